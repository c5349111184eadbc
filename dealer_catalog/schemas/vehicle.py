from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
from typing import Optional

from dealer_catalog.config import settings
from dealer_catalog.models.vehicle import VehicleStatus

MIN_YEAR = 1990


def max_year() -> int:
    return datetime.now(timezone.utc).year + 1


class Dimensions(BaseModel):
    length: Optional[float] = None
    width:  Optional[float] = None
    height: Optional[float] = None

    @field_validator("length", "width", "height")
    @classmethod
    def check_positive(cls, v):
        if v is not None and v < 0:
            raise ValueError("Dimensions cannot be negative")
        return v


# ─── Requests ─────────────────────────────────────────────────────────────────
class VehicleCreateRequest(BaseModel):
    category:          str      # category slug
    make:              str
    model:             str
    year:              int
    mileage:           int
    price:             int
    engineType:        Optional[str] = None
    dimensions:        Dimensions = Field(default_factory=Dimensions)
    condition:         Optional[str] = None
    features:          list[str] = Field(default_factory=list)
    descriptionLocal:  Optional[str] = None
    descriptionGlobal: Optional[str] = None
    status:            VehicleStatus = VehicleStatus.AVAILABLE

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        if not v.strip(): raise ValueError("Category is required")
        return v.strip()

    @field_validator("make", "model")
    @classmethod
    def check_required_text(cls, v, info):
        v = v.strip()
        label = info.field_name.capitalize()
        if not v: raise ValueError(f"{label} is required")
        if len(v) > 100: raise ValueError(f"{label} must not exceed 100 characters")
        return v

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        upper = max_year()
        if not (MIN_YEAR <= v <= upper): raise ValueError(f"Year must be between {MIN_YEAR} and {upper}")
        return v

    @field_validator("price")
    @classmethod
    def check_price(cls, v):
        if v <= 0: raise ValueError("Price must be greater than 0")
        return v

    @field_validator("mileage")
    @classmethod
    def check_mileage(cls, v):
        if v < 0: raise ValueError("Mileage must be greater than or equal to 0")
        return v

    @field_validator("descriptionLocal", "descriptionGlobal")
    @classmethod
    def check_description(cls, v):
        if v is not None and len(v) > 2000:
            raise ValueError("Description must not exceed 2000 characters")
        return v


class VehicleUpdateRequest(VehicleCreateRequest):
    """Full rewrite of every mutable field; same rules as creation."""


class VehicleStatusRequest(BaseModel):
    status: VehicleStatus


# ─── Queries ──────────────────────────────────────────────────────────────────
class VehicleListFilters(BaseModel):
    category: Optional[str] = None
    minPrice: Optional[int] = None
    maxPrice: Optional[int] = None
    minYear:  Optional[int] = None
    maxYear:  Optional[int] = None
    page:     int = Field(1, ge=1)
    pageSize: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.pageSize


class RelatedQuery(BaseModel):
    vehicleId: int
    category:  str
    price:     int = Field(gt=0)
    limit:     int = Field(settings.RELATED_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE)
