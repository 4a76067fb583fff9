# Models package - Import all models for Flask-SQLAlchemy

from models.fuel import FuelingRecord, FillUpType
from models.statistics import VehicleStatistics
from models.vehicles import Vehicle

__all__ = [
    'FillUpType',
    'FuelingRecord',
    'Vehicle',
    'VehicleStatistics',
]
