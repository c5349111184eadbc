from dealer_catalog.storage.base import StorageBackend
from dealer_catalog.storage.local import LocalStorage

__all__ = ["StorageBackend", "LocalStorage"]
