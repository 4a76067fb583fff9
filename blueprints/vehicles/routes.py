from flask import request, jsonify, Response, current_app
from . import vehicles_bp
from .forms import VehicleForm, FuelingRecordForm
from models.vehicles import Vehicle
from models.fuel import FuelingRecord
from services.vehicle_service import VehicleService
from services.statistics_service import StatisticsCacheService
from services.csv_service import CsvService
from services.fuel_entry import FuelEntryDraft, EditableField, complete_fuel_fields, parse_number
from extensions import db, limiter
from utils.date_helpers import parse_year_month, relative_description


def _form_error(form):
    return jsonify({'error': 'Validation failed', 'errors': form.errors}), 400


def _record_payload(record):
    payload = record.to_dict()
    payload['relative_date'] = relative_description(record.date)
    return payload


# ===== VEHICLE MANAGEMENT =====

@vehicles_bp.route('/vehicles', methods=['GET'])
def index():
    """Active vehicles with their cached statistics"""
    vehicles = Vehicle.query.filter_by(is_active=True).order_by(Vehicle.name).all()
    return jsonify([
        dict(vehicle.to_dict(), statistics=StatisticsCacheService.get_vehicle_stats(vehicle.id))
        for vehicle in vehicles
    ])


@vehicles_bp.route('/vehicles', methods=['POST'])
def add_vehicle():
    """Add a new vehicle"""
    form = VehicleForm()
    if not form.validate():
        return _form_error(form)
    try:
        vehicle = VehicleService.create_vehicle(
            name=form.name.data,
            make=form.make.data or None,
            model=form.model.data or None,
            year=form.year.data
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('Error adding vehicle')
        return jsonify({'error': f'Error adding vehicle: {str(e)}'}), 500

    return jsonify(vehicle.to_dict()), 201


@vehicles_bp.route('/vehicles/<int:vehicle_id>', methods=['POST'])
def update_vehicle(vehicle_id):
    """Update vehicle details"""
    vehicle = Vehicle.query.get_or_404(vehicle_id)
    form = VehicleForm()
    if not form.validate():
        return _form_error(form)
    try:
        # Fields the client did not send are left alone; sent empty clears them
        changes = {}
        for field in (form.make, form.model, form.year, form.is_active):
            if field.raw_data:
                changes[field.name] = None if field.data == '' else field.data
        VehicleService.update_vehicle(vehicle, name=form.name.data, **changes)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error updating vehicle {vehicle_id}')
        return jsonify({'error': f'Error updating vehicle: {str(e)}'}), 500

    return jsonify(vehicle.to_dict())


@vehicles_bp.route('/vehicles/<int:vehicle_id>', methods=['DELETE'])
def delete_vehicle(vehicle_id):
    """Delete a vehicle and its fuel log"""
    vehicle = Vehicle.query.get_or_404(vehicle_id)
    try:
        VehicleService.delete_vehicle(vehicle)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error deleting vehicle {vehicle_id}')
        return jsonify({'error': f'Error deleting vehicle: {str(e)}'}), 500

    return jsonify({'deleted': vehicle_id})


@vehicles_bp.route('/vehicles/<int:vehicle_id>/statistics', methods=['GET'])
def statistics(vehicle_id):
    Vehicle.query.get_or_404(vehicle_id)
    return jsonify(StatisticsCacheService.get_vehicle_stats(vehicle_id))


# ===== FUEL LOG =====

@vehicles_bp.route('/vehicles/<int:vehicle_id>/records', methods=['GET'])
def fuel_records(vehicle_id):
    """Fuel log for a vehicle, optionally limited to one month (?month=YYYY-MM)"""
    Vehicle.query.get_or_404(vehicle_id)

    month = request.args.get('month')
    if month:
        try:
            records = VehicleService.records_for_month(vehicle_id, parse_year_month(month))
        except (ValueError, IndexError):
            return jsonify({'error': 'month must be YYYY-MM'}), 400
    else:
        records = VehicleService.get_records(vehicle_id)

    return jsonify({
        'records': [_record_payload(r) for r in records],
        'totals': VehicleService.totals(records),
    })


@vehicles_bp.route('/vehicles/<int:vehicle_id>/records', methods=['POST'])
def add_fuel(vehicle_id):
    """Add a fuel record"""
    Vehicle.query.get_or_404(vehicle_id)

    form = FuelingRecordForm()
    form.previous_miles = VehicleService.get_previous_miles(vehicle_id)
    if not form.validate():
        return _form_error(form)

    try:
        record = VehicleService.add_fueling_record(
            vehicle_id,
            current_miles=form.current_miles.data,
            price_per_gallon=form.price_per_gallon.data,
            gallons=form.gallons.data,
            total_cost=form.total_cost.data,
            fuel_date=form.parsed_date,
            fill_up_type=form.fill_up_type.data,
            notes=form.notes.data
        )
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error adding fuel record for vehicle {vehicle_id}')
        return jsonify({'error': f'Error adding fuel record: {str(e)}'}), 500

    return jsonify(_record_payload(record)), 201


@vehicles_bp.route('/records/<int:record_id>', methods=['POST'])
def update_fuel(record_id):
    """Update a fuel record"""
    record = FuelingRecord.query.get_or_404(record_id)

    form = FuelingRecordForm()
    form.previous_miles = record.previous_miles
    form.require_odometer_increase = False
    if not form.validate():
        return _form_error(form)

    try:
        VehicleService.update_fueling_record(
            record,
            current_miles=form.current_miles.data,
            price_per_gallon=form.price_per_gallon.data,
            gallons=form.gallons.data,
            total_cost=form.total_cost.data,
            fuel_date=form.parsed_date,
            fill_up_type=form.fill_up_type.data if form.fill_up_type.raw_data else None,
            notes=form.notes.data
        )
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error updating fuel record {record_id}')
        return jsonify({'error': f'Error updating fuel record: {str(e)}'}), 500

    return jsonify(_record_payload(record))


@vehicles_bp.route('/records/<int:record_id>', methods=['DELETE'])
def delete_fuel(record_id):
    """Delete a fuel record"""
    record = FuelingRecord.query.get_or_404(record_id)
    try:
        VehicleService.delete_fueling_record(record)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error deleting fuel record {record_id}')
        return jsonify({'error': f'Error deleting fuel record: {str(e)}'}), 500

    return jsonify({'deleted': record_id})


@vehicles_bp.route('/fuel/resolve', methods=['POST'])
def resolve_fuel_fields():
    """
    Run the price / gallons / total-cost auto-calculation for a draft.

    With ``edited_field`` the typing rule for that field applies; without it,
    whichever value is missing is completed from the other two.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400
    edited = data.get('edited_field')

    if not edited:
        price, gallons, cost = complete_fuel_fields(
            parse_number(data.get('price_per_gallon')),
            parse_number(data.get('gallons')),
            parse_number(data.get('total_cost'))
        )
        return jsonify({'price_per_gallon': price, 'gallons': gallons, 'total_cost': cost})

    try:
        field = EditableField(edited)
    except ValueError:
        return jsonify({'error': f'Unknown field: {edited}'}), 400

    values = {f.value: data.get(f.value) for f in EditableField}
    typed = values.pop(field.value)
    draft = FuelEntryDraft(
        previous_miles=parse_number(data.get('previous_miles')) or 0.0,
        current_miles=data.get('current_miles'),
        price_decimals=current_app.config['FUEL_PRICE_DECIMALS'],
        gallons_decimals=current_app.config['FUEL_GALLONS_DECIMALS'],
        **values
    )
    draft.user_edit(field, typed)
    return jsonify(draft.to_dict())


# ===== CSV =====

@vehicles_bp.route('/vehicles/<int:vehicle_id>/export.csv', methods=['GET'])
def export_csv(vehicle_id):
    vehicle = Vehicle.query.get_or_404(vehicle_id)
    return Response(
        CsvService.export_vehicle_records(vehicle_id),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename=fuel_log_{vehicle.id}.csv'}
    )


@vehicles_bp.route('/vehicles/<int:vehicle_id>/import', methods=['POST'])
@limiter.limit(lambda: current_app.config['FUEL_IMPORT_RATE_LIMIT'])
def import_csv(vehicle_id):
    """Import fill-ups from an uploaded CSV file (or a text/csv request body)"""
    Vehicle.query.get_or_404(vehicle_id)

    upload = request.files.get('file')
    raw = upload.read() if upload else request.get_data()
    if not raw:
        return jsonify({'error': 'No CSV data provided'}), 400
    if len(raw) > current_app.config['FUEL_IMPORT_MAX_BYTES']:
        return jsonify({'error': 'CSV file too large'}), 413

    try:
        imported, skipped = CsvService.import_records(vehicle_id, raw.decode('utf-8-sig'))
    except UnicodeDecodeError:
        return jsonify({'error': 'CSV must be UTF-8 encoded'}), 400
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception(f'Error importing CSV for vehicle {vehicle_id}')
        return jsonify({'error': f'Error importing CSV: {str(e)}'}), 500

    return jsonify({'imported': imported, 'skipped': skipped})
