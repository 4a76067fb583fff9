"""
Vehicle Service
===============
Saving, editing and querying fill-ups for a vehicle, keeping the statistics
cache in step.

Fuel metrics
------------
Each FuelingRecord stores the odometer reading of the vehicle's previous fill
(previous_miles), so miles driven, MPG and cost per mile are derived from the
record alone.  The first fill for a vehicle has no previous reading: it is
stored with previous_miles=0 and always as a partial fill-up, since no MPG can
be calculated for it.

Primary entry points
--------------------
  add_fueling_record()     — validate, insert, update the cache incrementally
  update_fueling_record()  — validate, save changes, recompute the cache
  delete_fueling_record()  — delete, recompute the cache
  records_between()        — fill-ups within a date range
  records_for_month()      — fill-ups in the calendar month of a date
  totals()                 — cost / miles / gallons summed over records
"""
from datetime import datetime, timezone
from flask import current_app
from models.vehicles import Vehicle
from models.fuel import FuelingRecord, FillUpType
from services.fuel_entry import FuelEntryDraft
from services.statistics_service import StatisticsCacheService
from extensions import db
from utils.date_helpers import month_bounds


class VehicleService:
    """
    Fill-up lifecycle for vehicles.

    Every write method commits.  Validation failures raise ValueError before
    anything is added to the session.
    """

    # ===== VEHICLES =====

    @staticmethod
    def create_vehicle(name, make=None, model=None, year=None):
        vehicle = Vehicle(name=name, make=make, model=model, year=year, is_active=True)
        db.session.add(vehicle)
        db.session.commit()
        current_app.logger.info(f'Vehicle added: {vehicle.id} {vehicle.name}')
        return vehicle

    @staticmethod
    def update_vehicle(vehicle, **fields):
        """Apply the given fields; make, model and year passed as None are cleared"""
        for key in ('make', 'model', 'year'):
            if key in fields:
                setattr(vehicle, key, fields[key])
        for key in ('name', 'is_active'):
            if fields.get(key) is not None:
                setattr(vehicle, key, fields[key])
        db.session.commit()
        return vehicle

    @staticmethod
    def delete_vehicle(vehicle):
        """Delete a vehicle with its fill-ups and cached statistics"""
        vehicle_id = vehicle.id
        db.session.delete(vehicle)
        db.session.commit()
        current_app.logger.info(f'Vehicle deleted: {vehicle_id}')

    # ===== FUEL LOG =====

    @staticmethod
    def get_latest_fuel_record(vehicle_id):
        """Get the most recent fuel record for a vehicle"""
        return FuelingRecord.query.filter_by(vehicle_id=vehicle_id).order_by(
            FuelingRecord.date.desc(), FuelingRecord.id.desc()
        ).first()

    @staticmethod
    def get_previous_miles(vehicle_id):
        """Odometer reading of the last fill-up, 0 when there is none"""
        latest = VehicleService.get_latest_fuel_record(vehicle_id)
        return latest.current_miles if latest else 0.0

    @staticmethod
    def _check(draft):
        errors = draft.validation_errors()
        if errors:
            raise ValueError('; '.join(errors.values()))

    @staticmethod
    def add_fueling_record(vehicle_id, current_miles, price_per_gallon, gallons, total_cost,
                           fuel_date=None, fill_up_type=FillUpType.FULL, notes=None):
        """
        Save a new fill-up for the vehicle.

        Args:
            vehicle_id:        ID of the Vehicle.
            current_miles:     Odometer reading at this fill-up; must exceed the last one.
            price_per_gallon:  Price paid per gallon.
            gallons:           Gallons added.
            total_cost:        Total paid.
            fuel_date:         When the fill-up happened (naive UTC); defaults to now.
            fill_up_type:      FillUpType or 'full' / 'partial'.
            notes:             Optional free text; blank is stored as None.

        Returns:
            The committed FuelingRecord.
        """
        previous_miles = VehicleService.get_previous_miles(vehicle_id)
        VehicleService._check(FuelEntryDraft(
            previous_miles=previous_miles,
            current_miles=current_miles,
            price_per_gallon=price_per_gallon,
            gallons=gallons,
            total_cost=total_cost,
        ))

        # No previous reading means no MPG, so the first fill is always partial
        is_first_record = previous_miles == 0
        effective_type = FillUpType.PARTIAL if is_first_record else FillUpType(fill_up_type)

        record = FuelingRecord(
            vehicle_id=vehicle_id,
            date=fuel_date or datetime.now(timezone.utc).replace(tzinfo=None),
            current_miles=float(current_miles),
            previous_miles=previous_miles,
            price_per_gallon=float(price_per_gallon),
            gallons=float(gallons),
            total_cost=float(total_cost),
            notes=notes or None
        )
        record.fill_up_type = effective_type
        db.session.add(record)
        db.session.flush()

        # Update statistics cache incrementally
        StatisticsCacheService.update_for_new_record(record, db.session.get(Vehicle, vehicle_id))
        db.session.commit()

        current_app.logger.info(
            f'Fill-up added: vehicle={vehicle_id} miles={record.miles_driven:.0f} '
            f'mpg={record.mpg:.1f} cost={record.total_cost:.2f}'
        )
        return record

    @staticmethod
    def update_fueling_record(record, current_miles, price_per_gallon, gallons, total_cost,
                              fuel_date=None, fill_up_type=None, notes=None):
        """Save edits to a fill-up, then recompute the vehicle's statistics"""
        VehicleService._check(FuelEntryDraft(
            previous_miles=record.previous_miles,
            current_miles=current_miles,
            price_per_gallon=price_per_gallon,
            gallons=gallons,
            total_cost=total_cost,
            require_odometer_increase=False,
        ))

        if fuel_date is not None:
            record.date = fuel_date
        record.current_miles = float(current_miles)
        record.price_per_gallon = float(price_per_gallon)
        record.gallons = float(gallons)
        record.total_cost = float(total_cost)
        if fill_up_type is not None:
            record.fill_up_type = fill_up_type
        record.notes = notes or None

        # Full recalculation on edit
        StatisticsCacheService.update_for_edited_record(record.vehicle_id)
        db.session.commit()

        current_app.logger.info(f'Fill-up updated: {record.id} (vehicle={record.vehicle_id})')
        return record

    @staticmethod
    def delete_fueling_record(record):
        """Delete a fill-up, then recompute the vehicle's statistics"""
        vehicle_id = record.vehicle_id
        record_id = record.id
        db.session.delete(record)
        StatisticsCacheService.update_for_edited_record(vehicle_id)
        db.session.commit()
        current_app.logger.info(f'Fill-up deleted: {record_id} (vehicle={vehicle_id})')

    # ===== QUERIES =====

    @staticmethod
    def records_between(vehicle_id, start_date, end_date):
        """Fill-ups with start_date <= date <= end_date, oldest first"""
        return FuelingRecord.query.filter(
            FuelingRecord.vehicle_id == vehicle_id,
            FuelingRecord.date >= start_date,
            FuelingRecord.date <= end_date
        ).order_by(FuelingRecord.date.asc(), FuelingRecord.id.asc()).all()

    @staticmethod
    def records_for_month(vehicle_id, value):
        """Fill-ups in the calendar month containing *value*"""
        start_date, end_date = month_bounds(value)
        return VehicleService.records_between(vehicle_id, start_date, end_date)

    @staticmethod
    def get_records(vehicle_id):
        return FuelingRecord.query.filter_by(vehicle_id=vehicle_id).order_by(
            FuelingRecord.date.desc(), FuelingRecord.id.desc()
        ).all()

    @staticmethod
    def totals(records):
        """Total cost, miles and gallons for a list of records"""
        return {
            'total_cost': sum(r.total_cost or 0.0 for r in records),
            'total_miles': sum(r.counted_miles for r in records),
            'total_gallons': sum(r.gallons or 0.0 for r in records),
        }
