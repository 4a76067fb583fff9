from extensions import db
from datetime import datetime, timezone


class VehicleStatistics(db.Model):
    """Cache table of running fuel totals per vehicle"""
    __tablename__ = 'vehicle_statistics'

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id'), nullable=False, unique=True)

    record_count = db.Column(db.Integer, nullable=False, default=0)
    total_cost = db.Column(db.Float, nullable=False, default=0.0)
    total_gallons = db.Column(db.Float, nullable=False, default=0.0)
    total_miles = db.Column(db.Float, nullable=False, default=0.0)

    # MPG basis: full fill-ups only
    full_fill_miles = db.Column(db.Float, nullable=False, default=0.0)
    full_fill_gallons = db.Column(db.Float, nullable=False, default=0.0)

    # Metadata
    last_calculated = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    def reset(self):
        self.record_count = 0
        self.total_cost = 0.0
        self.total_gallons = 0.0
        self.total_miles = 0.0
        self.full_fill_miles = 0.0
        self.full_fill_gallons = 0.0

    def add_record(self, record):
        """Add one fill-up's contribution to the running totals"""
        miles = record.counted_miles
        gallons = record.gallons or 0.0

        self.record_count = (self.record_count or 0) + 1
        self.total_cost = (self.total_cost or 0.0) + (record.total_cost or 0.0)
        self.total_gallons = (self.total_gallons or 0.0) + gallons
        self.total_miles = (self.total_miles or 0.0) + miles

        if not record.is_partial_fill_up and miles > 0 and gallons > 0:
            self.full_fill_miles = (self.full_fill_miles or 0.0) + miles
            self.full_fill_gallons = (self.full_fill_gallons or 0.0) + gallons

        self.last_calculated = datetime.now(timezone.utc).replace(tzinfo=None)

    @property
    def average_mpg(self):
        if not self.full_fill_gallons:
            return 0.0
        return self.full_fill_miles / self.full_fill_gallons

    @property
    def average_cost_per_mile(self):
        if not self.total_miles:
            return 0.0
        return self.total_cost / self.total_miles

    @property
    def average_price_per_gallon(self):
        if not self.total_gallons:
            return 0.0
        return self.total_cost / self.total_gallons

    def to_dict(self):
        return {
            'vehicle_id': self.vehicle_id,
            'record_count': self.record_count or 0,
            'total_cost': round(self.total_cost or 0.0, 2),
            'total_gallons': round(self.total_gallons or 0.0, 3),
            'total_miles': round(self.total_miles or 0.0, 1),
            'average_mpg': round(self.average_mpg, 2),
            'average_cost_per_mile': round(self.average_cost_per_mile, 3),
            'average_price_per_gallon': round(self.average_price_per_gallon, 3),
        }

    def __repr__(self):
        return f'<VehicleStatistics {self.vehicle_id}: {self.record_count} records, ${self.total_cost}>'
