from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES: machine-readable constants for frontend switch/case
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR        = "VALIDATION_ERROR"
    NOT_FOUND               = "NOT_FOUND"
    CONFLICT                = "CONFLICT"
    DUPLICATE_ENTRY         = "DUPLICATE_ENTRY"
    CATEGORY_IN_USE         = "CATEGORY_IN_USE"
    INVALID_CATEGORY        = "INVALID_CATEGORY"
    QUOTA_EXCEEDED          = "QUOTA_EXCEEDED"
    UNSUPPORTED_MEDIA       = "UNSUPPORTED_MEDIA"
    PAYLOAD_TOO_LARGE       = "PAYLOAD_TOO_LARGE"
    INTERNAL_SERVER_ERROR   = "INTERNAL_SERVER_ERROR"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error_code for frontend handling.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | None = None,
        field: str | None = None,
    ):
        super().__init__(status_code=status_code, detail={
            "message": message,
            "error": {
                "code": error_code,
                "details": details,
                "field": field,
            }
        })

    @property
    def code(self) -> str:
        return self.detail["error"]["code"]

    @property
    def message(self) -> str:
        return self.detail["message"]

    @property
    def details(self) -> list | None:
        return self.detail["error"]["details"]

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class ValidationException(AppException):
    def __init__(self, message: str = "Validation error. Please check your input.",
                 details: list | None = None, field: str | None = None):
        super().__init__(422, message, ErrorCode.VALIDATION_ERROR,
                         details=details, field=field)


class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class ConflictException(AppException):
    def __init__(self, message: str = "Request conflicts with current state",
                 error_code: str = ErrorCode.CONFLICT, field: str | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, error_code, field=field)


class DuplicateEntryException(ConflictException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        super().__init__(message, ErrorCode.DUPLICATE_ENTRY, field=field)


class CategoryInUseException(ConflictException):
    def __init__(self, vehicle_count: int):
        super().__init__(
            f"Cannot delete category: {vehicle_count} vehicle(s) are using this category",
            ErrorCode.CATEGORY_IN_USE,
        )


class QuotaExceededException(ConflictException):
    def __init__(self, limit: int):
        super().__init__(f"Maximum {limit} images per vehicle exceeded", ErrorCode.QUOTA_EXCEEDED)


class InvalidCategoryException(AppException):
    def __init__(self, slug: str):
        super().__init__(
            422,
            f"Invalid category: {slug}",
            ErrorCode.INVALID_CATEGORY,
            field="category",
        )


class UnsupportedMediaException(AppException):
    def __init__(self, message: str = "Unsupported media type",
                 status_code: int = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                 error_code: str = ErrorCode.UNSUPPORTED_MEDIA):
        super().__init__(status_code, message, error_code)


class PayloadTooLargeException(UnsupportedMediaException):
    def __init__(self, max_bytes: int):
        super().__init__(
            f"File size exceeds maximum allowed size of {max_bytes // (1024 * 1024)}MB",
            413,
            ErrorCode.PAYLOAD_TOO_LARGE,
        )


class InternalException(AppException):
    def __init__(self, message: str = "An unexpected error occurred. Please try again later."):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message, ErrorCode.INTERNAL_SERVER_ERROR)
