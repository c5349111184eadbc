import json
import logging
import math
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from dealer_catalog.config import settings
from dealer_catalog.models.category import Category
from dealer_catalog.models.vehicle import Vehicle, VehicleStatus, utcnow
from dealer_catalog.models.vehicle_image import VehicleImage
from dealer_catalog.schemas.vehicle import (
    VehicleCreateRequest, VehicleUpdateRequest, VehicleListFilters, VehicleStatusRequest, RelatedQuery,
)
from dealer_catalog.services.category_service import CategoryService
from dealer_catalog.services.media_service import MediaService, serialize_image
from dealer_catalog.utils.exceptions import (
    AppException, NotFoundException, InvalidCategoryException, InternalException,
)

logger = logging.getLogger(__name__)


def _aware(dt: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _iso(dt: datetime | None) -> str | None:
    dt = _aware(dt)
    return dt.isoformat() if dt else None


def parse_features(raw: str | None, vehicle_id: int | None = None) -> list[str]:
    """
    Decode the stored feature list. A malformed column degrades to an empty
    list instead of failing the read; features are display-only.
    """
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"[VEHICLE] Failed to parse features for vehicle #{vehicle_id}: {e}")
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        logger.warning(f"[VEHICLE] Features of vehicle #{vehicle_id} are not a list of strings")
        return []
    return value


def dump_features(features: list[str]) -> str:
    return json.dumps(list(features), ensure_ascii=False)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _serialize(v: Vehicle, images: list[VehicleImage]) -> dict:
    return {
        "id":       v.id,
        "category": v.category.slug,
        "categoryName": {"local": v.category.nameLocal, "global": v.category.nameGlobal},
        "make":       v.make,
        "model":      v.model,
        "year":       v.year,
        "mileage":    v.mileage,
        "price":      v.price,
        "engineType": v.engineType,
        "dimensions": {"length": v.length, "width": v.width, "height": v.height},
        "condition":  v.condition,
        "features":   parse_features(v.featuresJson, v.id),
        "descriptionLocal":  v.descriptionLocal,
        "descriptionGlobal": v.descriptionGlobal,
        "status":     v.status.value,
        "images":     [serialize_image(img) for img in images],
        "createdAt":  _iso(v.createdAt),
        "updatedAt":  _iso(v.updatedAt),
    }


class VehicleService:

    def __init__(self, db: Session, categories: CategoryService, media: MediaService):
        self.db = db
        self.categories = categories
        self.media = media

    # ─── Helpers ──────────────────────────────────────────────────────────────
    def _base_query(self):
        return self.db.query(Vehicle).join(Vehicle.category).options(contains_eager(Vehicle.category))

    def _get_or_404(self, vehicle_id: int) -> Vehicle:
        v = self._base_query().filter(Vehicle.id == vehicle_id).first()
        if not v:
            raise NotFoundException("Vehicle")
        return v

    def _resolve_category(self, slug: str) -> Category:
        cat = self.categories.find_by_slug(slug)
        if not cat:
            raise InvalidCategoryException(slug)
        return cat

    def _images_by_vehicle(self, vehicle_ids: list[int]) -> dict[int, list[VehicleImage]]:
        grouped: dict[int, list[VehicleImage]] = defaultdict(list)
        if not vehicle_ids:
            return grouped
        rows = self.db.query(VehicleImage).filter(VehicleImage.vehicleId.in_(vehicle_ids))\
                      .order_by(VehicleImage.vehicleId, VehicleImage.order, VehicleImage.id).all()
        for img in rows:
            grouped[img.vehicleId].append(img)
        return grouped

    def _serialize_many(self, vehicles: list[Vehicle]) -> list[dict]:
        images = self._images_by_vehicle([v.id for v in vehicles])
        return [_serialize(v, images.get(v.id, [])) for v in vehicles]

    def _apply(self, v: Vehicle, data: VehicleCreateRequest, category: Category) -> None:
        v.category          = category
        v.make              = data.make
        v.model             = data.model
        v.year              = data.year
        v.mileage           = data.mileage
        v.price             = data.price
        v.engineType        = data.engineType
        v.length            = data.dimensions.length
        v.width             = data.dimensions.width
        v.height            = data.dimensions.height
        v.condition         = data.condition
        v.featuresJson      = dump_features(data.features)
        v.descriptionLocal  = data.descriptionLocal
        v.descriptionGlobal = data.descriptionGlobal
        v.status            = data.status

    # ─── CRUD ─────────────────────────────────────────────────────────────────
    def exists(self, vehicle_id: int) -> bool:
        return self.db.query(Vehicle.id).filter(Vehicle.id == vehicle_id).first() is not None

    def get_vehicle(self, vehicle_id: int) -> dict:
        v = self._get_or_404(vehicle_id)
        return self._serialize_many([v])[0]

    def create_vehicle(self, data: VehicleCreateRequest) -> dict:
        category = self._resolve_category(data.category)

        now = utcnow()
        vehicle = Vehicle(createdAt=now, updatedAt=now)
        self._apply(vehicle, data, category)
        self.db.add(vehicle)
        self.db.commit()

        logger.info(f"[VEHICLE] Created #{vehicle.id} {data.make} {data.model} ({data.year})")
        return self.get_vehicle(vehicle.id)

    def update_vehicle(self, vehicle_id: int, data: VehicleUpdateRequest) -> dict:
        v = self._get_or_404(vehicle_id)
        category = self._resolve_category(data.category)

        self._apply(v, data, category)
        previous = _aware(v.updatedAt)
        now = utcnow()
        v.updatedAt = now if previous is None or now >= previous else previous
        self.db.commit()

        logger.info(f"[VEHICLE] Updated #{vehicle_id}")
        return self.get_vehicle(vehicle_id)

    def set_status(self, vehicle_id: int, data: VehicleStatusRequest) -> dict:
        v = self._get_or_404(vehicle_id)
        old_status = v.status.value
        v.status = data.status
        v.updatedAt = max(utcnow(), _aware(v.updatedAt) or utcnow())
        self.db.commit()

        logger.info(f"[VEHICLE] #{vehicle_id} status {old_status} -> {data.status.value}")
        return self.get_vehicle(vehicle_id)

    def delete_vehicle(self, vehicle_id: int) -> None:
        """
        Delete a vehicle together with all of its images. Image artifacts go
        first, then image rows and the vehicle row in one transaction.
        """
        v = self._get_or_404(vehicle_id)

        with self.media.exclusive(vehicle_id):
            try:
                self.db.query(Vehicle.id).filter(Vehicle.id == vehicle_id).with_for_update().first()
                removed = self.media.purge_vehicle(vehicle_id)
                self.db.delete(v)
                self.db.commit()
            except AppException:
                self.db.rollback()
                raise
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"[VEHICLE] Could not delete #{vehicle_id}: {e}", exc_info=True)
                raise InternalException("Failed to delete vehicle")

        logger.info(f"[VEHICLE] Deleted #{vehicle_id} with {removed} image(s)")

    # ─── Listing ──────────────────────────────────────────────────────────────
    def list_vehicles(self, filters: VehicleListFilters) -> dict:
        q = self._base_query()

        if filters.category:
            q = q.filter(Category.slug == filters.category)
        if filters.minPrice is not None:
            q = q.filter(Vehicle.price >= filters.minPrice)
        if filters.maxPrice is not None:
            q = q.filter(Vehicle.price <= filters.maxPrice)
        if filters.minYear is not None:
            q = q.filter(Vehicle.year >= filters.minYear)
        if filters.maxYear is not None:
            q = q.filter(Vehicle.year <= filters.maxYear)

        total = q.count()
        items = q.order_by(Vehicle.createdAt.desc(), Vehicle.id.desc())\
                 .offset(filters.offset).limit(filters.pageSize).all()
        return {
            "items":      self._serialize_many(items),
            "totalCount": total,
            "page":       filters.page,
            "pageSize":   filters.pageSize,
        }

    def search_vehicles(self, query: str | None) -> list[dict]:
        text = (query or "").strip()
        if not text:
            return []

        kw = f"%{_escape_like(text)}%"
        columns = (
            Vehicle.make,
            Vehicle.model,
            Category.nameLocal,
            Category.nameGlobal,
            Vehicle.descriptionLocal,
            Vehicle.descriptionGlobal,
        )
        items = self._base_query()\
                    .filter(or_(*[col.ilike(kw, escape="\\") for col in columns]))\
                    .order_by(Vehicle.createdAt.desc(), Vehicle.id.desc()).all()
        return self._serialize_many(items)

    def related_vehicles(self, query: RelatedQuery) -> list[dict]:
        """
        Available vehicles priced within the band around `query.price`, closest price
        first. Same-category matches come first; other categories fill the
        remaining slots.
        """
        vehicle_id, category, price, limit = query.vehicleId, query.category, query.price, query.limit
        band = settings.RELATED_PRICE_BAND
        low, high = math.floor(price * (1 - band)), math.ceil(price * (1 + band))
        distance = func.abs(Vehicle.price - price)

        candidates = self._base_query().filter(
            Vehicle.id != vehicle_id,
            Vehicle.price.between(low, high),
            Vehicle.status == VehicleStatus.AVAILABLE,
        )
        ranking = (distance.asc(), Vehicle.createdAt.desc(), Vehicle.id.desc())

        found = candidates.filter(Category.slug == category).order_by(*ranking).limit(limit).all()
        if len(found) < limit:
            found += candidates.filter(Category.slug != category)\
                               .order_by(*ranking).limit(limit - len(found)).all()
        return self._serialize_many(found)
