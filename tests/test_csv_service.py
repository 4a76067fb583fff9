"""
Tests for CSV export/import of fill-ups.
"""
from datetime import datetime

import pytest

from models.fuel import CSV_HEADER, FuelingRecord
from services.csv_service import CsvService
from services.statistics_service import StatisticsCacheService


SAMPLE = (
    CSV_HEADER + '\n'
    '2026-03-01T08:30:00Z,1000.0,0.0,3.5,10.0,35.0,true,""\n'
    '2026-03-08T08:30:00Z,1300.0,1000.0,3.5,10.0,35.0,false,"Costco, exit 12"\n'
    'not-a-date,1600.0,1300.0,3.5,10.0,35.0,false,""\n'
    '\n'
    '2026-03-15T08:30:00Z,1600.0,1300.0,3.25,12.0,39.0,false,"said ""full"""\n'
)


class TestExport:
    def test_starts_with_header(self, vehicle):
        assert CsvService.export_vehicle_records(vehicle.id) == CSV_HEADER + '\n'

    def test_rows_are_oldest_first(self, vehicle, add_fill):
        add_fill(1000, day=1)
        add_fill(1300, day=8, notes='second')
        lines = CsvService.export_vehicle_records(vehicle.id).splitlines()
        assert lines[0] == CSV_HEADER
        assert lines[1].startswith('2026-03-01T08:30:00Z,1000.0,0.0,')
        assert lines[2].endswith(',false,"second"')


class TestParse:
    def test_skips_header_blank_lines_and_bad_rows(self):
        records, skipped = CsvService.parse_records(SAMPLE)
        assert len(records) == 3
        assert skipped == 1

    def test_decodes_quoted_notes(self):
        records, _ = CsvService.parse_records(SAMPLE)
        assert records[1].notes == 'Costco, exit 12'
        assert records[2].notes == 'said "full"'

    def test_notes_with_line_breaks_survive(self):
        record = FuelingRecord(
            date=datetime(2026, 3, 1, 8, 30), current_miles=1000.0, previous_miles=0.0,
            price_per_gallon=3.5, gallons=10.0, total_cost=35.0,
            is_partial_fill_up=False, notes='line one\nline two'
        )
        records, skipped = CsvService.parse_records(CsvService.export_records([record]))
        assert skipped == 0
        assert records[0].notes == 'line one\nline two'


class TestImport:
    def test_import_saves_records_and_recomputes_statistics(self, vehicle):
        imported, skipped = CsvService.import_records(vehicle.id, SAMPLE)
        assert (imported, skipped) == (3, 1)

        stats = StatisticsCacheService.get_vehicle_stats(vehicle.id)
        assert stats['record_count'] == 3
        assert stats['total_miles'] == pytest.approx(600.0)
        assert stats['average_mpg'] == pytest.approx(600.0 / 22.0, abs=0.01)

    def test_export_then_import_round_trip(self, vehicle, add_fill, app):
        from services.vehicle_service import VehicleService
        add_fill(1000, day=1)
        add_fill(1300, gallons=9.876, price=3.459, day=8, notes='a "quoted", note')
        exported = CsvService.export_vehicle_records(vehicle.id)

        other = VehicleService.create_vehicle('Copy')
        CsvService.import_records(other.id, exported)

        def fields(vehicle_id):
            return [
                (r.date, r.current_miles, r.previous_miles, r.price_per_gallon, r.gallons,
                 r.total_cost, r.is_partial_fill_up, r.notes)
                for r in VehicleService.records_between(
                    vehicle_id, datetime(2026, 1, 1), datetime(2026, 12, 31))
            ]

        assert fields(other.id) == fields(vehicle.id)
