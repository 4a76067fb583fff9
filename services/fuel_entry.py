"""
Fuel Entry
==========
Editable draft of a fill-up as the user types it, with the price / gallons /
total-cost auto-calculation.

Auto-calculation rules
----------------------
The three fuel fields are tied by  total_cost = price_per_gallon × gallons.
Whichever field the user is typing in decides what is derived:

  edit price per gallon  →  gallons          = total_cost / price_per_gallon
  edit gallons           →  price per gallon = total_cost / gallons
  edit total cost        →  price per gallon = total_cost / gallons

Every write to a field (typed or computed) fires the change hook, exactly as a
bound text field would.  Two things keep a computed write from cascading into
another calculation: the rule only runs for the field that has focus, and the
``_is_calculating`` flag short-circuits any calculation started while another
one is writing back its result.

Primary entry points
--------------------
  complete_fuel_fields()   — given any two positive values, derive the third
  FuelEntryDraft           — text-field state, save gate, MPG / cost-per-mile preview
"""
import enum

from models.fuel import FuelingRecord


class EditableField(enum.Enum):
    PRICE_PER_GALLON = 'price_per_gallon'
    GALLONS = 'gallons'
    TOTAL_COST = 'total_cost'


def parse_number(text):
    """Parse a text field value; None when empty or not a number"""
    if text is None:
        return None
    if isinstance(text, (int, float)):
        return float(text)
    text = str(text).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _positive(value):
    return value is not None and value > 0


def complete_fuel_fields(price_per_gallon=None, gallons=None, total_cost=None):
    """
    Fill in whichever of the three fuel values is missing.

    Returns (price_per_gallon, gallons, total_cost).  Values are returned
    untouched unless exactly the two operands of a rule are positive and the
    third is missing or non-positive.
    """
    if _positive(price_per_gallon) and _positive(gallons) and not _positive(total_cost):
        total_cost = FuelingRecord.calculate_total_cost(price_per_gallon, gallons)
    elif _positive(total_cost) and _positive(gallons) and not _positive(price_per_gallon):
        price_per_gallon = FuelingRecord.calculate_price_per_gallon(total_cost, gallons)
    elif _positive(total_cost) and _positive(price_per_gallon) and not _positive(gallons):
        gallons = FuelingRecord.calculate_gallons(total_cost, price_per_gallon)
    return price_per_gallon, gallons, total_cost


class FuelEntryDraft:
    """
    The add/edit fill-up form state, independent of any UI toolkit.

    Fields hold text, the way the user typed it.  ``user_edit()`` is the only
    way a change becomes "typed"; results of the auto-calculation are written
    through ``_write()`` while focus stays on the field the user is editing.
    """

    def __init__(self, previous_miles=0.0, current_miles='', price_per_gallon='',
                 gallons='', total_cost='', require_odometer_increase=True,
                 price_decimals=3, gallons_decimals=3):
        self.previous_miles = previous_miles or 0.0
        self.require_odometer_increase = require_odometer_increase
        self.price_decimals = price_decimals
        self.gallons_decimals = gallons_decimals
        self.focused_field = None
        self._is_calculating = False
        self._values = {
            'current_miles': str(current_miles or ''),
            EditableField.PRICE_PER_GALLON: str(price_per_gallon or ''),
            EditableField.GALLONS: str(gallons or ''),
            EditableField.TOTAL_COST: str(total_cost or ''),
        }

    @classmethod
    def from_record(cls, record, price_decimals=3, gallons_decimals=3, cost_decimals=2):
        """Draft for editing an existing record; the odometer is not re-checked on edit"""
        return cls(
            previous_miles=record.previous_miles,
            current_miles=f'{record.current_miles:.0f}',
            price_per_gallon=f'{record.price_per_gallon:.{price_decimals}f}',
            gallons=f'{record.gallons:.{gallons_decimals}f}',
            total_cost=f'{record.total_cost:.{cost_decimals}f}',
            require_odometer_increase=False,
            price_decimals=price_decimals,
            gallons_decimals=gallons_decimals,
        )

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def text(self, field):
        return self._values[field]

    def user_edit(self, field, text):
        """The user typed into *field*: it takes focus and its change hook runs."""
        if field == 'current_miles':
            self.focused_field = None
        else:
            field = EditableField(field)
            self.focused_field = field
        self._write(field, text)

    def blur(self):
        self.focused_field = None

    def _write(self, field, text):
        text = '' if text is None else str(text)
        if self._values[field] == text:
            return
        self._values[field] = text
        self._on_change(field)

    def _on_change(self, field):
        # Only the field being typed in drives a calculation
        if field != self.focused_field:
            return
        if field is EditableField.PRICE_PER_GALLON:
            self.calculate_gallons()
        else:
            self.calculate_price_per_gallon()

    # ------------------------------------------------------------------
    # Auto-calculation
    # ------------------------------------------------------------------

    def calculate_price_per_gallon(self):
        if self._is_calculating:
            return
        gallons, cost = self.gallons, self.total_cost
        if not (_positive(gallons) and _positive(cost)):
            return

        self._is_calculating = True
        try:
            calculated = FuelingRecord.calculate_price_per_gallon(cost, gallons)
            self._write(EditableField.PRICE_PER_GALLON, f'{calculated:.{self.price_decimals}f}')
        finally:
            self._is_calculating = False

    def calculate_gallons(self):
        if self._is_calculating:
            return
        price, cost = self.price_per_gallon, self.total_cost
        if not (_positive(price) and _positive(cost)):
            return

        self._is_calculating = True
        try:
            calculated = FuelingRecord.calculate_gallons(cost, price)
            self._write(EditableField.GALLONS, f'{calculated:.{self.gallons_decimals}f}')
        finally:
            self._is_calculating = False

    # ------------------------------------------------------------------
    # Parsed values
    # ------------------------------------------------------------------

    @property
    def current_miles(self):
        return parse_number(self._values['current_miles'])

    @property
    def price_per_gallon(self):
        return parse_number(self._values[EditableField.PRICE_PER_GALLON])

    @property
    def gallons(self):
        return parse_number(self._values[EditableField.GALLONS])

    @property
    def total_cost(self):
        return parse_number(self._values[EditableField.TOTAL_COST])

    # ------------------------------------------------------------------
    # Save gate and previews
    # ------------------------------------------------------------------

    def validation_errors(self):
        """Per-field messages; empty when the draft can be saved"""
        errors = {}
        current = self.current_miles
        if current is None:
            errors['current_miles'] = 'Odometer reading is required'
        elif self.require_odometer_increase and current <= self.previous_miles:
            errors['current_miles'] = (
                f'Odometer must be greater than last recorded ({self.previous_miles:.0f} mi)'
            )
        if not _positive(self.price_per_gallon):
            errors['price_per_gallon'] = 'Price per gallon must be greater than 0'
        if not _positive(self.gallons):
            errors['gallons'] = 'Gallons must be greater than 0'
        if not _positive(self.total_cost):
            errors['total_cost'] = 'Total cost must be greater than 0'
        return errors

    @property
    def is_valid(self):
        return not self.validation_errors()

    @property
    def preview_mpg(self):
        current, gallons = self.current_miles, self.gallons
        if current is None or not _positive(gallons):
            return None
        return (current - self.previous_miles) / gallons

    @property
    def preview_cost_per_mile(self):
        current, cost = self.current_miles, self.total_cost
        if current is None or cost is None:
            return None
        miles = current - self.previous_miles
        if miles <= 0:
            return None
        return cost / miles

    def to_dict(self):
        return {
            'current_miles': self._values['current_miles'],
            'price_per_gallon': self._values[EditableField.PRICE_PER_GALLON],
            'gallons': self._values[EditableField.GALLONS],
            'total_cost': self._values[EditableField.TOTAL_COST],
            'is_valid': self.is_valid,
            'errors': self.validation_errors(),
            'preview_mpg': self.preview_mpg,
            'preview_cost_per_mile': self.preview_cost_per_mile,
        }
