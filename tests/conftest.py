"""
Shared pytest fixtures for the Fuel Log test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.
"""
from datetime import datetime

import pytest
from app import create_app
from extensions import db as _db


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()


@pytest.fixture
def client(app):
    return app.test_client()


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def vehicle(app):
    from models.vehicles import Vehicle
    v = Vehicle(name='Test Car', make='Honda', model='Civic', year=2019, is_active=True)
    _db.session.add(v)
    _db.session.commit()
    return v


@pytest.fixture
def add_fill(vehicle):
    """Save a fill-up for the test vehicle through the service layer."""
    from services.vehicle_service import VehicleService

    def _add(current_miles, gallons=10.0, price=3.5, cost=None, day=1, fill_up_type='full', notes=None):
        return VehicleService.add_fueling_record(
            vehicle.id,
            current_miles=current_miles,
            price_per_gallon=price,
            gallons=gallons,
            total_cost=cost if cost is not None else round(price * gallons, 2),
            fuel_date=datetime(2026, 3, day, 8, 30),
            fill_up_type=fill_up_type,
            notes=notes,
        )

    return _add
