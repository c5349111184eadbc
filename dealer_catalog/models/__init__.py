"""
Import all models here so that:
1. Alembic can auto-detect them when generating migrations
2. Relationships between models resolve correctly

Order matters: import parent tables before child tables.
"""

from dealer_catalog.models.category import Category
from dealer_catalog.models.vehicle import Vehicle, VehicleStatus
from dealer_catalog.models.vehicle_image import VehicleImage

__all__ = [
    "Category",
    "Vehicle",
    "VehicleStatus",
    "VehicleImage",
]
