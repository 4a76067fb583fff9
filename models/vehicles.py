from extensions import db
from datetime import datetime, timezone


class Vehicle(db.Model):
    __tablename__ = 'vehicles'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)  # Daily Driver, Work Truck
    make = db.Column(db.String(50))
    model = db.Column(db.String(50))
    year = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    
    # Relationships
    fuel_records = db.relationship(
        'FuelingRecord',
        backref='vehicle',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='(FuelingRecord.date, FuelingRecord.id)'
    )
    statistics = db.relationship(
        'VehicleStatistics',
        backref='vehicle',
        uselist=False,
        cascade='all, delete-orphan'
    )
    
    @property
    def last_record(self):
        """Most recent fill-up (by date), or None for a new vehicle"""
        if not self.fuel_records:
            return None
        return max(self.fuel_records, key=lambda r: (r.date, r.id or 0))
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'make': self.make,
            'model': self.model,
            'year': self.year,
            'is_active': self.is_active,
        }
    
    def __repr__(self):
        return f'<Vehicle {self.id}: {self.name}>'
