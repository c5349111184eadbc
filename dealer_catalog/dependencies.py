from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from dealer_catalog.config import settings
from dealer_catalog.database import get_db
from dealer_catalog.services.category_service import CategoryService
from dealer_catalog.services.media_service import MediaService, vehicle_locks
from dealer_catalog.services.vehicle_service import VehicleService
from dealer_catalog.storage import StorageBackend, LocalStorage
from dealer_catalog.utils.imaging import ImageProcessor
from dealer_catalog.utils.locks import KeyedLocks


# ─── Process-wide collaborators (created once, shared by every request) ──────
@lru_cache
def get_storage() -> StorageBackend:
    return LocalStorage(settings.MEDIA_ROOT, settings.MEDIA_BASE_URL)


@lru_cache
def get_image_processor() -> ImageProcessor:
    return ImageProcessor(
        thumbnail_size=(settings.THUMBNAIL_WIDTH, settings.THUMBNAIL_HEIGHT),
        max_dimension=settings.IMAGE_MAX_DIMENSION,
        quality=settings.IMAGE_QUALITY,
        thumbnail_quality=settings.THUMBNAIL_QUALITY,
        workers=settings.IMAGE_WORKERS,
    )


# ─── Per-request service bundle ───────────────────────────────────────────────
@dataclass
class CatalogServices:
    categories: CategoryService
    vehicles:   VehicleService
    media:      MediaService


def build_services(
    db: Session,
    storage: StorageBackend,
    processor: ImageProcessor,
    locks: KeyedLocks | None = None,
) -> CatalogServices:
    """
    Wire the three catalog components around one session.

    Usage:
        services = build_services(db, get_storage(), get_image_processor())
        services.vehicles.delete_vehicle(vehicle_id)
    """
    categories = CategoryService(db)
    media = MediaService(db, storage, processor, locks=locks if locks is not None else vehicle_locks)
    vehicles = VehicleService(db, categories, media)
    return CatalogServices(categories=categories, vehicles=vehicles, media=media)


def get_services(db: Session = Depends(get_db)) -> CatalogServices:
    """
    FastAPI dependency for the surrounding route layer.

    Usage:
        @router.delete("/vehicles/{vehicle_id}")
        def delete_vehicle(vehicle_id: int, services: CatalogServices = Depends(get_services)):
            services.vehicles.delete_vehicle(vehicle_id)
    """
    return build_services(db, get_storage(), get_image_processor())
