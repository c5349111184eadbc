from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """
    Where image artifacts live. Paths are relative keys such as
    "images/vehicle_1_....jpg"; implementations decide how they map to
    disk files or object-store keys.
    """

    def put(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        """Store bytes under path and return the public URL."""
        ...

    def delete(self, path: str) -> None:
        """Remove path. Removing an absent path is a no-op."""
        ...

    def exists(self, path: str) -> bool:
        ...
