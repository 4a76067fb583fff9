"""
Statistics Cache Service
========================
Write-through cache of per-vehicle fuel totals stored in the VehicleStatistics
table.  Avoids scanning every fill-up when listing vehicles.

Cache model
-----------
Each row stores vehicle_id → (record_count, total_cost, total_gallons,
total_miles, full_fill_miles, full_fill_gallons).  Averages are derived on read.

  total_miles       — sum of positive miles_driven over all fill-ups.
  full_fill_*       — miles / gallons from full fill-ups only; the MPG basis.
                      Partial fill-ups never move the average MPG.

Two update paths:

  update_for_new_record()     — add one record's contribution (cheap, on every insert)
  update_for_edited_record()  — recompute the vehicle from all its records
                                (edits, deletes and imports are rare enough)

Primary entry points
--------------------
  update_for_new_record()     — incremental update after an insert
  update_for_edited_record()  — full recompute for one vehicle
  get_vehicle_stats()         — read the cache (builds the row on a miss)
  rebuild_all_cache()         — full rebuild for every vehicle
"""
from flask import current_app
from extensions import db
from models.fuel import FuelingRecord
from models.statistics import VehicleStatistics
from models.vehicles import Vehicle


class StatisticsCacheService:
    """
    Running fuel totals per vehicle.

    Update methods add to the session and leave the commit to the caller.
    Reads commit only when they had to build a missing row.
    """

    @staticmethod
    def _get_or_create(vehicle_id):
        cache_entry = VehicleStatistics.query.filter_by(vehicle_id=vehicle_id).first()
        if cache_entry is None:
            cache_entry = VehicleStatistics(vehicle_id=vehicle_id)
            cache_entry.reset()
            db.session.add(cache_entry)
        return cache_entry

    @staticmethod
    def update_for_new_record(record, vehicle):
        """Add a newly inserted record's contribution to the vehicle's totals"""
        vehicle_id = vehicle.id if vehicle is not None else record.vehicle_id
        cache_entry = VehicleStatistics.query.filter_by(vehicle_id=vehicle_id).first()
        if cache_entry is None:
            # No cache yet: a recompute already includes this record
            return StatisticsCacheService.update_for_edited_record(vehicle_id)

        cache_entry.add_record(record)
        return cache_entry

    @staticmethod
    def update_for_edited_record(vehicle):
        """Recompute the vehicle's totals from every record it owns"""
        vehicle_id = vehicle.id if isinstance(vehicle, Vehicle) else vehicle
        db.session.flush()

        records = FuelingRecord.query.filter_by(vehicle_id=vehicle_id).order_by(
            FuelingRecord.date.asc(), FuelingRecord.id.asc()
        ).all()

        cache_entry = StatisticsCacheService._get_or_create(vehicle_id)
        cache_entry.reset()
        for record in records:
            cache_entry.add_record(record)

        current_app.logger.debug(
            f'Recomputed statistics for vehicle {vehicle_id}: {len(records)} records'
        )
        return cache_entry

    @staticmethod
    def get_vehicle_stats(vehicle_id):
        """
        Cached statistics for a vehicle as a dict.

        Builds the cache row on a miss so the first read after a migration or
        a bulk load is still correct.
        """
        cache_entry = VehicleStatistics.query.filter_by(vehicle_id=vehicle_id).first()
        if cache_entry is None:
            cache_entry = StatisticsCacheService.update_for_edited_record(vehicle_id)
            db.session.commit()
        return cache_entry.to_dict()

    @staticmethod
    def rebuild_all_cache():
        """Recompute the cached row of every vehicle"""
        vehicles = Vehicle.query.order_by(Vehicle.id).all()
        for vehicle in vehicles:
            StatisticsCacheService.update_for_edited_record(vehicle)

        db.session.commit()
        current_app.logger.info(f'Statistics cache rebuilt for {len(vehicles)} vehicle(s)')
        return len(vehicles)
