"""
Fill-up and vehicle forms
Validate what the client posts (form-encoded or JSON) before it reaches the services
"""
from dateutil import parser as date_parser
from datetime import timezone
from flask_wtf import FlaskForm
from wtforms import StringField, FloatField, IntegerField, SelectField, TextAreaField, BooleanField
from wtforms.validators import DataRequired, Optional, Length, NumberRange, ValidationError

from models.fuel import FillUpType
from services.fuel_entry import FuelEntryDraft, complete_fuel_fields


class VehicleForm(FlaskForm):
    name = StringField('Name', validators=[
        DataRequired(message='Vehicle name is required'),
        Length(max=100, message='Name must be at most 100 characters')
    ])
    make = StringField('Make', validators=[Optional(), Length(max=50)])
    model = StringField('Model', validators=[Optional(), Length(max=50)])
    year = IntegerField('Year', validators=[Optional(), NumberRange(min=1900, max=2100)])
    is_active = BooleanField('Active', default=True)


class FuelingRecordForm(FlaskForm):
    """
    Add/edit fill-up form.

    Any two of price per gallon, gallons and total cost are enough: the third is
    completed before the save gate runs.  Set ``previous_miles`` and
    ``require_odometer_increase`` before calling validate().
    """
    date = StringField('Date & Time', validators=[Optional()])
    current_miles = FloatField('Odometer Reading', validators=[
        DataRequired(message='Odometer reading is required')
    ])
    price_per_gallon = FloatField('Price per Gallon', validators=[Optional()])
    gallons = FloatField('Gallons', validators=[Optional()])
    total_cost = FloatField('Total Cost', validators=[Optional()])
    fill_up_type = SelectField(
        'Fill-up Type',
        choices=[(t.value, t.display_name) for t in FillUpType],
        default=FillUpType.FULL.value
    )
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=2000)])

    previous_miles = 0.0
    require_odometer_increase = True

    def validate_date(self, field):
        if not field.data:
            return
        try:
            parsed = date_parser.isoparse(str(field.data).strip())
        except ValueError:
            raise ValidationError('Date must be ISO-8601, e.g. 2026-03-04T08:15:00Z')
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        self.parsed_date = parsed

    def validate(self, extra_validators=None):
        self.parsed_date = None
        if not super().validate(extra_validators=extra_validators):
            return False

        price, gallons, cost = complete_fuel_fields(
            self.price_per_gallon.data, self.gallons.data, self.total_cost.data
        )
        self.price_per_gallon.data = price
        self.gallons.data = gallons
        self.total_cost.data = cost

        draft = FuelEntryDraft(
            previous_miles=self.previous_miles,
            current_miles=self.current_miles.data,
            price_per_gallon=price,
            gallons=gallons,
            total_cost=cost,
            require_odometer_increase=self.require_odometer_increase,
        )
        errors = draft.validation_errors()
        for name, message in errors.items():
            getattr(self, name).errors.append(message)
        return not errors
