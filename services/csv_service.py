"""
CSV export/import of fill-ups.

Row format (one header line, then one line per record):

    date,currentMiles,previousMiles,pricePerGallon,gallons,totalCost,isPartialFillUp,notes

Dates are ISO-8601 UTC with a trailing Z.  Notes are always quoted, with
embedded quotes doubled.
"""
import csv
import io

from flask import current_app

from extensions import db
from models.fuel import CSV_HEADER, FuelingRecord
from services.statistics_service import StatisticsCacheService


class CsvService:

    @staticmethod
    def export_records(records):
        """Header plus one line per record, newline terminated"""
        lines = [CSV_HEADER]
        lines.extend(record.to_csv_row() for record in records)
        return '\n'.join(lines) + '\n'

    @staticmethod
    def export_vehicle_records(vehicle_id):
        records = FuelingRecord.query.filter_by(vehicle_id=vehicle_id).order_by(
            FuelingRecord.date.asc(), FuelingRecord.id.asc()
        ).all()
        return CsvService.export_records(records)

    @staticmethod
    def parse_records(text):
        """
        Decode CSV text into unsaved records.

        Returns (records, skipped) where skipped counts rows that failed to
        decode.  The header line and blank lines are ignored.
        """
        records = []
        skipped = 0
        for row in csv.reader(io.StringIO(text)):
            if not row or not any(cell.strip() for cell in row):
                continue
            if row[0].strip() == 'date':
                continue
            record = FuelingRecord.from_csv_row(row)
            if record is None:
                skipped += 1
                continue
            records.append(record)
        return records, skipped

    @staticmethod
    def import_records(vehicle_id, text):
        """
        Import CSV text into a vehicle's fuel log and recompute its statistics.

        Returns:
            (imported, skipped)
        """
        records, skipped = CsvService.parse_records(text)
        for record in records:
            record.vehicle_id = vehicle_id
            db.session.add(record)

        StatisticsCacheService.update_for_edited_record(vehicle_id)
        db.session.commit()

        current_app.logger.info(
            f'CSV import for vehicle {vehicle_id}: imported={len(records)} skipped={skipped}'
        )
        return len(records), skipped
