import re
from pydantic import BaseModel, field_validator
from typing import Optional

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _check_name(v: str, label: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{label} is required")
    if len(v) > 100:
        raise ValueError(f"{label} must not exceed 100 characters")
    return v


# ─── Requests ─────────────────────────────────────────────────────────────────
class CategoryUpdateRequest(BaseModel):
    nameLocal:  str
    nameGlobal: str
    slug:       str

    @field_validator("nameLocal")
    @classmethod
    def check_name_local(cls, v):
        return _check_name(v, "Local name")

    @field_validator("nameGlobal")
    @classmethod
    def check_name_global(cls, v):
        return _check_name(v, "Global name")

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v):
        v = v.strip()
        if len(v) > 100:
            raise ValueError("Slug must not exceed 100 characters")
        if not SLUG_PATTERN.match(v):
            raise ValueError("Slug may only contain lowercase letters, digits and single hyphens")
        return v


class CategoryCreateRequest(CategoryUpdateRequest):
    icon: Optional[str] = None


class CategoryIconRequest(BaseModel):
    icon: str

    @field_validator("icon")
    @classmethod
    def check_icon(cls, v):
        if not v.strip():
            raise ValueError("Icon markup cannot be empty")
        return v
