import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealer_catalog.models.category import Category
from dealer_catalog.models.vehicle import Vehicle
from dealer_catalog.schemas.category import CategoryCreateRequest, CategoryUpdateRequest, CategoryIconRequest
from dealer_catalog.utils.exceptions import (
    NotFoundException, DuplicateEntryException, CategoryInUseException,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("平ボディ", "Flatbed", "flatbed"),
    ("ダンプ", "Dump", "dump"),
    ("クレーン", "Crane", "crane"),
    ("バン・ウィング", "Van/Wing", "van-wing"),
    ("冷凍車", "Refrigerated", "refrigerated"),
    ("アームロール・フックロール", "Arm Roll/Hook Roll", "arm-roll"),
    ("キャリアカー・ローダー", "Carrier/Loader", "carrier"),
    ("パッカー車", "Garbage Truck", "garbage"),
    ("ミキサー車", "Mixer", "mixer"),
    ("タンク車", "Tank", "tank"),
    ("高所作業車", "Aerial Work Platform", "aerial"),
    ("特殊車両", "Special Vehicles", "special"),
    ("バス", "Bus", "bus"),
    ("ベース車輛・その他", "Base Vehicle/Other", "other"),
]


def _serialize(c: Category) -> dict:
    return {
        "id":         c.id,
        "nameLocal":  c.nameLocal,
        "nameGlobal": c.nameGlobal,
        "slug":       c.slug,
        "icon":       c.icon,
    }


class CategoryService:

    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, category_id: int) -> Category:
        cat = self.db.query(Category).filter(Category.id == category_id).first()
        if not cat:
            raise NotFoundException("Category")
        return cat

    def find_by_slug(self, slug: str) -> Category | None:
        return self.db.query(Category).filter(Category.slug == slug).first()

    # ─── Queries ──────────────────────────────────────────────────────────────
    def list_categories(self) -> list[dict]:
        cats = self.db.query(Category).order_by(Category.id).all()
        return [_serialize(c) for c in cats]

    def get_category(self, category_id: int) -> dict:
        return _serialize(self._get_or_404(category_id))

    def get_category_by_slug(self, slug: str) -> dict:
        cat = self.find_by_slug(slug)
        if not cat:
            raise NotFoundException("Category")
        return _serialize(cat)

    # ─── Mutations ────────────────────────────────────────────────────────────
    def create_category(self, data: CategoryCreateRequest) -> dict:
        if self.find_by_slug(data.slug):
            raise DuplicateEntryException(f'Category with slug "{data.slug}" already exists', field="slug")

        cat = Category(nameLocal=data.nameLocal, nameGlobal=data.nameGlobal,
                       slug=data.slug, icon=data.icon)
        self.db.add(cat)
        self._commit_unique(data.slug)
        self.db.refresh(cat)
        logger.info(f"[CATEGORY] Created #{cat.id} ({cat.slug})")
        return _serialize(cat)

    def update_category(self, category_id: int, data: CategoryUpdateRequest) -> dict:
        cat = self._get_or_404(category_id)

        clash = self.find_by_slug(data.slug)
        if clash and clash.id != category_id:
            raise DuplicateEntryException(f'Category with slug "{data.slug}" already exists', field="slug")

        cat.nameLocal  = data.nameLocal
        cat.nameGlobal = data.nameGlobal
        cat.slug       = data.slug
        self._commit_unique(data.slug)
        self.db.refresh(cat)
        logger.info(f"[CATEGORY] Updated #{cat.id} ({cat.slug})")
        return _serialize(cat)

    def delete_category(self, category_id: int) -> None:
        cat = self._get_or_404(category_id)

        in_use = self.db.query(func.count(Vehicle.id)).filter(Vehicle.categoryId == category_id).scalar()
        if in_use:
            raise CategoryInUseException(in_use)

        self.db.delete(cat)
        self.db.commit()
        logger.info(f"[CATEGORY] Deleted #{category_id} ({cat.slug})")

    def set_icon(self, category_id: int, data: CategoryIconRequest) -> dict:
        cat = self._get_or_404(category_id)
        cat.icon = data.icon
        self.db.commit()
        self.db.refresh(cat)
        return _serialize(cat)

    def clear_icon(self, category_id: int) -> dict:
        cat = self._get_or_404(category_id)
        cat.icon = None
        self.db.commit()
        self.db.refresh(cat)
        return _serialize(cat)

    def seed_defaults(self) -> int:
        """Insert the default truck categories into an empty table. Returns rows added."""
        if self.db.query(func.count(Category.id)).scalar():
            return 0
        for name_local, name_global, slug in DEFAULT_CATEGORIES:
            self.db.add(Category(nameLocal=name_local, nameGlobal=name_global, slug=slug))
        self.db.commit()
        logger.info(f"[CATEGORY] Seeded {len(DEFAULT_CATEGORIES)} default categories")
        return len(DEFAULT_CATEGORIES)

    def _commit_unique(self, slug: str) -> None:
        # A concurrent writer can still claim the slug between check and commit
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateEntryException(f'Category with slug "{slug}" already exists', field="slug")
