import csv
import enum
from datetime import datetime, timezone

from dateutil import parser as date_parser

from extensions import db


CSV_HEADER = 'date,currentMiles,previousMiles,pricePerGallon,gallons,totalCost,isPartialFillUp,notes'
CSV_DATE_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


class FillUpType(enum.Enum):
    FULL = 'full'
    PARTIAL = 'partial'

    @property
    def display_name(self):
        return 'Full Tank' if self is FillUpType.FULL else 'Partial Fill'

    @property
    def description(self):
        if self is FillUpType.FULL:
            return 'Tank filled to the top. Used for MPG calculations.'
        return 'Tank not filled completely. Excluded from average MPG.'


class FuelingRecord(db.Model):
    __tablename__ = 'fueling_records'
    
    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicles.id'), nullable=False, index=True)
    date = db.Column(db.DateTime, nullable=False)  # UTC, naive
    current_miles = db.Column(db.Float, nullable=False)  # Odometer reading at this fill
    previous_miles = db.Column(db.Float, nullable=False, default=0.0)  # Odometer at last fill
    price_per_gallon = db.Column(db.Float, nullable=False)
    gallons = db.Column(db.Float, nullable=False)
    total_cost = db.Column(db.Float, nullable=False)
    is_partial_fill_up = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    
    # Computed properties

    @property
    def miles_driven(self):
        """Miles driven since last fill-up"""
        return (self.current_miles or 0.0) - (self.previous_miles or 0.0)

    @property
    def counted_miles(self):
        """Miles that count toward totals: 0 without a previous reading, never negative"""
        if not self.previous_miles:
            return 0.0
        return max(self.miles_driven, 0.0)

    @property
    def mpg(self):
        """Miles per gallon for this fill-up"""
        if not self.gallons or self.gallons <= 0:
            return 0.0
        return self.miles_driven / self.gallons

    @property
    def cost_per_mile(self):
        """Cost per mile for this fill-up"""
        miles = self.miles_driven
        if miles <= 0:
            return 0.0
        return (self.total_cost or 0.0) / miles

    @property
    def fill_up_type(self):
        return FillUpType.PARTIAL if self.is_partial_fill_up else FillUpType.FULL

    @fill_up_type.setter
    def fill_up_type(self, value):
        self.is_partial_fill_up = FillUpType(value) is FillUpType.PARTIAL

    # Static calculation helpers

    @staticmethod
    def calculate_total_cost(price_per_gallon, gallons):
        return price_per_gallon * gallons

    @staticmethod
    def calculate_gallons(total_cost, price_per_gallon):
        if price_per_gallon <= 0:
            return 0.0
        return total_cost / price_per_gallon

    @staticmethod
    def calculate_price_per_gallon(total_cost, gallons):
        if gallons <= 0:
            return 0.0
        return total_cost / gallons

    # CSV export/import

    def to_csv_row(self):
        """Encode as one CSV line; notes are always quoted with embedded quotes doubled."""
        notes_escaped = (self.notes or '').replace('"', '""')
        return ','.join([
            self.date.strftime(CSV_DATE_FORMAT),
            repr(float(self.current_miles)),
            repr(float(self.previous_miles or 0.0)),
            repr(float(self.price_per_gallon)),
            repr(float(self.gallons)),
            repr(float(self.total_cost)),
            'true' if self.is_partial_fill_up else 'false',
            f'"{notes_escaped}"',
        ])

    @classmethod
    def from_csv_row(cls, row):
        """
        Decode one CSV line (or an already-split list of columns).

        Returns an unsaved FuelingRecord, or None when the row has fewer than
        six columns or its date/number columns do not parse.
        """
        if isinstance(row, str):
            components = next(csv.reader([row]), [])
        else:
            components = list(row)
        if len(components) < 6:
            return None

        try:
            parsed = date_parser.isoparse(components[0].strip())
            current_miles, previous_miles, price_per_gallon, gallons, total_cost = (
                float(value) for value in components[1:6]
            )
        except (ValueError, OverflowError):
            return None

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)

        is_partial = len(components) > 6 and components[6].strip().lower() == 'true'
        notes = components[7] if len(components) > 7 and components[7] else None

        return cls(
            date=parsed,
            current_miles=current_miles,
            previous_miles=previous_miles,
            price_per_gallon=price_per_gallon,
            gallons=gallons,
            total_cost=total_cost,
            is_partial_fill_up=is_partial,
            notes=notes
        )

    def to_dict(self):
        return {
            'id': self.id,
            'vehicle_id': self.vehicle_id,
            'date': self.date.strftime(CSV_DATE_FORMAT) if self.date else None,
            'current_miles': self.current_miles,
            'previous_miles': self.previous_miles,
            'price_per_gallon': self.price_per_gallon,
            'gallons': self.gallons,
            'total_cost': self.total_cost,
            'fill_up_type': self.fill_up_type.value,
            'notes': self.notes,
            'miles_driven': self.miles_driven,
            'mpg': round(self.mpg, 2),
            'cost_per_mile': round(self.cost_per_mile, 3),
        }
    
    def __repr__(self):
        return f'<FuelingRecord {self.date}: vehicle={self.vehicle_id} - ${self.total_cost}>'
