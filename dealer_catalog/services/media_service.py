"""
Vehicle image pipeline.

Write ordering is what keeps metadata and artifacts consistent:
- upload: artifacts are written first, the metadata row is committed last,
  and artifacts are removed again if the commit does not happen
- delete: artifacts are removed first, then the metadata row

So the only inconsistency a reader can ever observe is a short-lived
metadata row whose files are already gone, never files nobody points at
(except after a failed best-effort cleanup, which is logged).
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dealer_catalog.config import settings
from dealer_catalog.models.vehicle import Vehicle, utcnow
from dealer_catalog.models.vehicle_image import VehicleImage
from dealer_catalog.storage.base import StorageBackend
from dealer_catalog.utils.exceptions import (
    AppException,
    NotFoundException,
    ValidationException,
    QuotaExceededException,
    UnsupportedMediaException,
    PayloadTooLargeException,
    InternalException,
)
from dealer_catalog.utils.imaging import ImageProcessor, RenderedImage
from dealer_catalog.utils.locks import KeyedLocks

logger = logging.getLogger(__name__)

# Shared by every MediaService in the process; one critical section per vehicle
vehicle_locks = KeyedLocks()


def serialize_image(img: VehicleImage) -> dict:
    uploaded = img.uploadedAt
    if uploaded is not None and uploaded.tzinfo is None:
        uploaded = uploaded.replace(tzinfo=utcnow().tzinfo)
    return {
        "id":           img.id,
        "vehicleId":    img.vehicleId,
        "filename":     img.filename,
        "url":          img.url,
        "thumbnailUrl": img.thumbnailUrl,
        "order":        img.order,
        "uploadedAt":   uploaded.isoformat() if uploaded else None,
    }


def new_filename(vehicle_id: int) -> str:
    return f"vehicle_{vehicle_id}_{utcnow():%Y%m%d%H%M%S%f}_{uuid.uuid4().hex[:8]}.jpg"


class MediaService:

    def __init__(
        self,
        db: Session,
        storage: StorageBackend,
        processor: ImageProcessor,
        locks: KeyedLocks | None = None,
        max_images: int = settings.MAX_IMAGES_PER_VEHICLE,
        max_bytes: int = settings.MAX_UPLOAD_BYTES,
        allowed_types: Sequence[str] | None = None,
    ):
        self.db = db
        self.storage = storage
        self.processor = processor
        self.locks = locks if locks is not None else vehicle_locks
        self.max_images = max_images
        self.max_bytes = max_bytes
        self.allowed_types = list(allowed_types or settings.get_allowed_image_types())

    # ─── Helpers ──────────────────────────────────────────────────────────────
    @contextmanager
    def exclusive(self, vehicle_id: int) -> Iterator[None]:
        """Per-vehicle critical section for anything that touches display order."""
        with self.locks.hold(vehicle_id):
            yield

    def _require_vehicle(self, vehicle_id: int, for_update: bool = False) -> None:
        q = self.db.query(Vehicle.id).filter(Vehicle.id == vehicle_id)
        if for_update:
            q = q.with_for_update()
        if q.first() is None:
            raise NotFoundException("Vehicle")

    def _get_or_404(self, image_id: int) -> VehicleImage:
        img = self.db.query(VehicleImage).filter(VehicleImage.id == image_id).first()
        if not img:
            raise NotFoundException("Image")
        return img

    def _count(self, vehicle_id: int) -> int:
        return self.db.query(func.count(VehicleImage.id))\
                      .filter(VehicleImage.vehicleId == vehicle_id).scalar()

    def _ordered(self, vehicle_id: int) -> list[VehicleImage]:
        return self.db.query(VehicleImage).filter(VehicleImage.vehicleId == vehicle_id)\
                      .order_by(VehicleImage.order, VehicleImage.id).all()

    def _compact(self, images: list[VehicleImage]) -> None:
        for position, img in enumerate(images):
            if img.order != position:
                img.order = position

    def _remove_artifacts(self, img: VehicleImage) -> None:
        try:
            self.storage.delete(img.imagePath)
            self.storage.delete(img.thumbnailPath)
        except Exception as e:
            logger.error(f"[MEDIA] Could not delete artifacts of image #{img.id}: {e}", exc_info=True)
            raise InternalException("Failed to delete image files")

    def _discard(self, paths: list[str]) -> None:
        """Best-effort cleanup of artifacts written for an upload that did not commit."""
        for path in paths:
            try:
                self.storage.delete(path)
            except Exception as e:
                logger.error(f"[MEDIA] Orphaned artifact left behind: {path} ({e})")
        if paths:
            logger.warning(f"[MEDIA] Cleaned up {len(paths)} artifact(s) after a failed upload")

    # ─── Queries ──────────────────────────────────────────────────────────────
    def get_image(self, image_id: int) -> dict:
        return serialize_image(self._get_or_404(image_id))

    def list_for_vehicle(self, vehicle_id: int) -> list[dict]:
        return [serialize_image(img) for img in self._ordered(vehicle_id)]

    # ─── Upload ───────────────────────────────────────────────────────────────
    def upload_image(self, vehicle_id: int, data: bytes, content_type: str) -> dict:
        self._require_vehicle(vehicle_id)

        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in self.allowed_types:
            raise UnsupportedMediaException(
                f"Invalid file format. Allowed formats: {', '.join(self.allowed_types)}"
            )
        if len(data) > self.max_bytes:
            raise PayloadTooLargeException(self.max_bytes)
        if not data:
            raise UnsupportedMediaException("Uploaded file is empty")
        if self._count(vehicle_id) >= self.max_images:
            raise QuotaExceededException(self.max_images)

        # CPU-bound work happens outside the per-vehicle lock
        try:
            rendered = self.processor.render(data)
        except AppException:
            raise
        except Exception as e:
            logger.error(f"[MEDIA] Transformation failed for vehicle #{vehicle_id}: {e}", exc_info=True)
            raise InternalException("Failed to process image")

        with self.exclusive(vehicle_id):
            return self._store(vehicle_id, rendered)

    def _store(self, vehicle_id: int, rendered: RenderedImage) -> dict:
        # The vehicle may have been deleted, or filled up, while we were rendering
        try:
            self._require_vehicle(vehicle_id, for_update=True)
        except NotFoundException:
            self.db.rollback()
            raise
        if self._count(vehicle_id) >= self.max_images:
            self.db.rollback()
            raise QuotaExceededException(self.max_images)

        filename = new_filename(vehicle_id)
        image_path = f"images/{filename}"
        thumb_path = f"thumbnails/thumb_{filename}"
        written: list[str] = []

        try:
            written.append(image_path)
            url = self.storage.put(image_path, rendered.full, "image/jpeg")
            written.append(thumb_path)
            thumbnail_url = self.storage.put(thumb_path, rendered.thumbnail, "image/jpeg")

            max_order = self.db.query(func.max(VehicleImage.order))\
                               .filter(VehicleImage.vehicleId == vehicle_id).scalar()
            img = VehicleImage(
                vehicleId=vehicle_id,
                filename=filename,
                url=url,
                thumbnailUrl=thumbnail_url,
                order=0 if max_order is None else max_order + 1,
                uploadedAt=utcnow(),
            )
            self.db.add(img)
            self.db.commit()
        except BaseException as e:
            # Also reached on cancellation, so no metadata row survives without its files
            self.db.rollback()
            self._discard(written)
            if isinstance(e, AppException) or not isinstance(e, Exception):
                raise
            logger.error(f"[MEDIA] Upload for vehicle #{vehicle_id} failed: {e}", exc_info=True)
            raise InternalException("Failed to store image")

        self.db.refresh(img)
        logger.info(f"[MEDIA] Stored image #{img.id} for vehicle #{vehicle_id} "
                    f"(order={img.order}, {len(rendered.full)} bytes)")
        return serialize_image(img)

    # ─── Delete ───────────────────────────────────────────────────────────────
    def delete_image(self, image_id: int) -> None:
        img = self._get_or_404(image_id)
        vehicle_id = img.vehicleId

        with self.exclusive(vehicle_id):
            self._remove_artifacts(img)
            try:
                self.db.delete(img)
                self.db.flush()
                self._compact(self._ordered(vehicle_id))
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"[MEDIA] Could not delete image #{image_id}: {e}", exc_info=True)
                raise InternalException("Failed to delete image")

        logger.info(f"[MEDIA] Deleted image #{image_id} of vehicle #{vehicle_id}")

    def purge_vehicle(self, vehicle_id: int) -> int:
        """
        Remove every artifact of a vehicle, then stage deletion of its image
        rows. Does NOT commit: the caller deletes the vehicle row in the same
        transaction. Call inside exclusive(vehicle_id).
        """
        images = self._ordered(vehicle_id)
        for img in images:
            self._remove_artifacts(img)
        for img in images:
            self.db.delete(img)
        self.db.flush()
        return len(images)

    # ─── Ordering ─────────────────────────────────────────────────────────────
    def reorder(self, vehicle_id: int, image_a: int, image_b: int) -> list[dict]:
        """Swap the display positions of two images of the same vehicle."""
        self._require_vehicle(vehicle_id)

        with self.exclusive(vehicle_id):
            images = self._ordered(vehicle_id)
            by_id = {img.id: img for img in images}
            if image_a not in by_id or image_b not in by_id:
                raise NotFoundException("Image")

            self._compact(images)
            first, second = by_id[image_a], by_id[image_b]
            first.order, second.order = second.order, first.order
            self.db.commit()

        logger.info(f"[MEDIA] Swapped images #{image_a} and #{image_b} of vehicle #{vehicle_id}")
        return self.list_for_vehicle(vehicle_id)

    def set_order(self, vehicle_id: int, image_ids: Sequence[int]) -> list[dict]:
        """Rewrite the whole display order; image_ids must list every image exactly once."""
        self._require_vehicle(vehicle_id)

        with self.exclusive(vehicle_id):
            images = self._ordered(vehicle_id)
            by_id = {img.id: img for img in images}
            if len(image_ids) != len(by_id) or set(image_ids) != set(by_id):
                raise ValidationException(
                    "Image order must list every image of the vehicle exactly once",
                    field="imageIds",
                )
            for position, image_id in enumerate(image_ids):
                by_id[image_id].order = position
            self.db.commit()

        logger.info(f"[MEDIA] Reordered {len(image_ids)} image(s) of vehicle #{vehicle_id}")
        return self.list_for_vehicle(vehicle_id)
