from pydantic import BaseModel, ValidationError
from typing import Any, Iterable, Mapping, Type, TypeVar

from dealer_catalog.utils.exceptions import ValidationException

T = TypeVar("T", bound=BaseModel)


# ─── Error Detail (per field) ──────────────────────────────────────────────────
class ErrorDetail(BaseModel):
    field: str
    message: str


# ─── Error Body ───────────────────────────────────────────────────────────────
class ErrorBody(BaseModel):
    code: str
    details: list[ErrorDetail] | None = None
    field: str | None = None


# ─── Error Response ───────────────────────────────────────────────────────────
class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: ErrorBody


# ─── Helper Functions ─────────────────────────────────────────────────────────
def format_errors(errors: Iterable[Mapping[str, Any]]) -> list[dict]:
    """
    Flatten pydantic error dicts into [{field, message}].
    loc is a tuple like ("body", "dimensions", "length").
    """
    details = []
    for error in errors:
        loc = error.get("loc", ())
        field = ".".join(str(part) for part in loc if part != "body") if loc else "unknown"
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": field or "unknown", "message": message})
    return details


def validate_payload(model: Type[T], data: Mapping[str, Any] | T) -> T:
    """
    Build a request model from a raw mapping, raising ValidationException
    (never a bare pydantic error) when the input is malformed.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationException(details=format_errors(e.errors()))
