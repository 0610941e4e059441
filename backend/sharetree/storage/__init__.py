"""Object store abstraction.

Services only ever address the store through storage addresses built from
immutable storage keys (see ``services.path_service``). Every implementation
raises ``StorageIOError`` on failure.
"""

from functools import lru_cache
from typing import Protocol

from ..core.config import settings
from .local import LocalObjectStore


class ObjectStore(Protocol):
    """Byte and directory operations on slash-separated addresses."""

    def put(self, key: str, data: bytes) -> None: ...

    def exists(self, key: str) -> bool: ...

    def delete(self, key: str) -> None: ...

    def make_directory(self, key: str) -> None: ...

    def delete_directory(self, prefix: str) -> None: ...

    def move(self, src: str, dst: str) -> None: ...

    def size(self, key: str) -> int: ...

    def mime_type(self, key: str) -> str: ...


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    """Process-wide store rooted at STORAGE_ROOT. FastAPI dependency."""
    return LocalObjectStore(settings.storage_root)


__all__ = ["ObjectStore", "LocalObjectStore", "get_object_store"]
