from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ─── Application ───────────────────────────────────────────────────────────
    APP_NAME: str = "Dealer Catalog"
    APP_ENV:  str = "development"
    APP_DEBUG: bool = True
    APP_HOST:  str = "0.0.0.0"
    APP_PORT:  int = 8000

    # ─── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL:          str  = "sqlite:///./data/catalog.db"
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False

    # ─── Media ─────────────────────────────────────────────────────────────────
    MEDIA_ROOT:             str = "./uploads"
    MEDIA_BASE_URL:         str = "/media"
    MAX_IMAGES_PER_VEHICLE: int = 20
    MAX_UPLOAD_BYTES:       int = 10 * 1024 * 1024
    ALLOWED_IMAGE_TYPES:    str = "image/jpeg,image/jpg,image/png,image/webp"
    THUMBNAIL_WIDTH:        int = 300
    THUMBNAIL_HEIGHT:       int = 200
    IMAGE_MAX_DIMENSION:    int = 2560
    IMAGE_QUALITY:          int = 85
    THUMBNAIL_QUALITY:      int = 80
    IMAGE_WORKERS:          int = 2

    # ─── Catalog ───────────────────────────────────────────────────────────────
    RELATED_LIMIT:      int   = 4
    RELATED_PRICE_BAND: float = 0.30
    DEFAULT_PAGE_SIZE:  int   = 12
    MAX_PAGE_SIZE:      int   = 100

    # ─── Logging ───────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ─── CORS ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    def get_allowed_image_types(self) -> List[str]:
        return [t.strip().lower() for t in self.ALLOWED_IMAGE_TYPES.split(",") if t.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
