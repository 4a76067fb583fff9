"""
Tests for the /api vehicle and fuel-log endpoints, through the Flask test client.
"""
import io

import pytest

from models.fuel import CSV_HEADER, FuelingRecord


def _add_record(client, vehicle_id, **payload):
    body = dict(date='2026-03-01T08:30:00Z', current_miles=1000, price_per_gallon=3.5,
                gallons=10, total_cost=35)
    body.update(payload)
    return client.post(f'/api/vehicles/{vehicle_id}/records', json=body)


class TestVehicleEndpoints:
    def test_add_vehicle(self, client):
        response = client.post('/api/vehicles', json={'name': 'Daily Driver', 'year': 2020})
        assert response.status_code == 201
        assert response.get_json()['name'] == 'Daily Driver'

    def test_add_vehicle_requires_name(self, client):
        response = client.post('/api/vehicles', json={'make': 'Mazda'})
        assert response.status_code == 400
        assert 'name' in response.get_json()['errors']

    def test_index_includes_statistics(self, client, vehicle, add_fill):
        add_fill(1000, day=1)
        add_fill(1300, gallons=10.0, day=8)
        data = client.get('/api/vehicles').get_json()
        assert data[0]['name'] == 'Test Car'
        assert data[0]['statistics']['average_mpg'] == 30.0

    def test_update_keeps_active_flag_when_not_sent(self, client, vehicle):
        response = client.post(f'/api/vehicles/{vehicle.id}', json={'name': 'Renamed'})
        assert response.status_code == 200
        assert response.get_json()['is_active'] is True
        assert response.get_json()['name'] == 'Renamed'

    def test_update_can_clear_optional_fields(self, client, vehicle):
        response = client.post(f'/api/vehicles/{vehicle.id}', json={'name': 'Test Car', 'make': '', 'year': ''})
        assert response.status_code == 200
        data = response.get_json()
        assert data['make'] is None
        assert data['year'] is None
        assert data['model'] == 'Civic'

    def test_delete_vehicle(self, client, vehicle):
        assert client.delete(f'/api/vehicles/{vehicle.id}').status_code == 200
        assert client.get(f'/api/vehicles/{vehicle.id}/statistics').status_code == 404

    def test_unknown_vehicle_is_json_404(self, client):
        response = client.get('/api/vehicles/999/records')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Not found'}

    def test_security_headers_are_set(self, client):
        response = client.get('/api/vehicles')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'


class TestFuelRecordEndpoints:
    def test_add_record(self, client, vehicle):
        response = _add_record(client, vehicle.id, notes='first fill')
        assert response.status_code == 201
        data = response.get_json()
        assert data['fill_up_type'] == 'partial'
        assert data['notes'] == 'first fill'
        assert data['date'] == '2026-03-01T08:30:00Z'

    def test_third_value_is_completed(self, client, vehicle):
        response = _add_record(client, vehicle.id, total_cost='')
        assert response.status_code == 201
        assert response.get_json()['total_cost'] == pytest.approx(35.0)

    def test_save_gate_rejects_low_odometer(self, client, vehicle, add_fill):
        add_fill(1000, day=1)
        response = _add_record(client, vehicle.id, current_miles=900)
        assert response.status_code == 400
        assert response.get_json()['errors']['current_miles'] == [
            'Odometer must be greater than last recorded (1000 mi)'
        ]

    def test_save_gate_rejects_missing_values(self, client, vehicle):
        response = _add_record(client, vehicle.id, gallons='', total_cost='')
        assert response.status_code == 400
        errors = response.get_json()['errors']
        assert 'gallons' in errors
        assert 'total_cost' in errors

    def test_bad_date_is_rejected(self, client, vehicle):
        response = _add_record(client, vehicle.id, date='last tuesday')
        assert response.status_code == 400
        assert 'date' in response.get_json()['errors']

    def test_list_records_with_month_filter(self, client, vehicle, add_fill):
        add_fill(1000, day=1)
        add_fill(1300, day=8)
        data = client.get(f'/api/vehicles/{vehicle.id}/records?month=2026-03').get_json()
        assert [r['current_miles'] for r in data['records']] == [1000.0, 1300.0]
        assert data['totals']['total_gallons'] == pytest.approx(20.0)
        assert client.get(f'/api/vehicles/{vehicle.id}/records?month=2026-02').get_json()['records'] == []

    def test_invalid_month_is_rejected(self, client, vehicle):
        assert client.get(f'/api/vehicles/{vehicle.id}/records?month=march').status_code == 400

    def test_update_record_recomputes_statistics(self, client, vehicle, add_fill):
        add_fill(1000, day=1)
        record = add_fill(1300, gallons=10.0, day=8)
        response = client.post(f'/api/records/{record.id}', json={
            'current_miles': 1400, 'price_per_gallon': 3.5, 'gallons': 10, 'total_cost': 35
        })
        assert response.status_code == 200
        assert response.get_json()['fill_up_type'] == 'full'
        stats = client.get(f'/api/vehicles/{vehicle.id}/statistics').get_json()
        assert stats['average_mpg'] == 40.0

    def test_delete_record(self, client, vehicle, add_fill):
        record = add_fill(1000, day=1)
        assert client.delete(f'/api/records/{record.id}').status_code == 200
        assert FuelingRecord.query.count() == 0


class TestResolveEndpoint:
    def test_completes_missing_value(self, client):
        data = client.post('/api/fuel/resolve', json={'price_per_gallon': 4, 'gallons': 10}).get_json()
        assert data['total_cost'] == pytest.approx(40.0)

    def test_typing_rule_for_edited_field(self, client):
        data = client.post('/api/fuel/resolve', json={
            'edited_field': 'price_per_gallon', 'price_per_gallon': '3.5', 'total_cost': '43.75',
            'current_miles': '1300', 'previous_miles': 1000
        }).get_json()
        assert data['gallons'] == '12.500'
        assert data['is_valid'] is True
        assert data['preview_mpg'] == pytest.approx(24.0)

    def test_rejects_non_object_body(self, client):
        response = client.post('/api/fuel/resolve', json=[1, 2])
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Expected a JSON object'

    def test_unknown_field(self, client):
        response = client.post('/api/fuel/resolve', json={'edited_field': 'octane'})
        assert response.status_code == 400


class TestCsvEndpoints:
    def test_export(self, client, vehicle, add_fill):
        add_fill(1000, day=1)
        response = client.get(f'/api/vehicles/{vehicle.id}/export.csv')
        assert response.mimetype == 'text/csv'
        assert response.get_data(as_text=True).splitlines()[0] == CSV_HEADER

    def test_import_upload(self, client, vehicle):
        text = (CSV_HEADER + '\n'
                '2026-03-01T08:30:00Z,1000.0,0.0,3.5,10.0,35.0,true,""\n'
                'broken row\n')
        response = client.post(
            f'/api/vehicles/{vehicle.id}/import',
            data={'file': (io.BytesIO(text.encode('utf-8')), 'fuel.csv')},
            content_type='multipart/form-data'
        )
        assert response.status_code == 200
        assert response.get_json() == {'imported': 1, 'skipped': 1}

    def test_import_requires_data(self, client, vehicle):
        assert client.post(f'/api/vehicles/{vehicle.id}/import').status_code == 400

    def test_import_rejects_oversized_body(self, app, client, vehicle):
        limit = app.config['FUEL_IMPORT_MAX_BYTES']
        body = (CSV_HEADER + '\n').encode('utf-8') + b' ' * limit
        response = client.post(f'/api/vehicles/{vehicle.id}/import', data=body, content_type='text/csv')
        assert response.status_code == 413
        assert FuelingRecord.query.count() == 0
