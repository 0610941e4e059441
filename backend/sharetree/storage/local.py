"""Filesystem-backed object store."""

import logging
import mimetypes
import shutil
from pathlib import Path

from ..exceptions import StorageIOError, ValidationError

logger = logging.getLogger(__name__)


class LocalObjectStore:
    """Stores objects as plain files below ``root``.

    Addresses are relative, slash-separated paths. Resolution refuses any
    address that escapes the root.
    """

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError("init", str(self.root), exc) from exc

    def _resolve(self, key: str) -> Path:
        rel = key.strip().lstrip("/")
        if not rel:
            raise ValidationError("Storage address must not be empty", field="key")
        candidate = (self.root / rel).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise ValidationError(f"Storage address escapes the store root: {key}", field="key") from exc
        if candidate == self.root:
            raise ValidationError("Storage address must not be the store root", field="key")
        return candidate

    def put(self, key: str, data: bytes) -> None:
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageIOError("put", key, exc) from exc
        logger.debug("Stored object", extra={"key": key, "size": len(data)})

    def exists(self, key: str) -> bool:
        return self._resolve(key).exists()

    def delete(self, key: str) -> None:
        """Remove one object. Deleting a missing object is a no-op."""
        path = self._resolve(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageIOError("delete", key, exc) from exc

    def make_directory(self, key: str) -> None:
        path = self._resolve(key)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError("make_directory", key, exc) from exc

    def delete_directory(self, prefix: str) -> None:
        """Remove a directory and everything below it. Missing is a no-op."""
        path = self._resolve(prefix)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise StorageIOError("delete_directory", prefix, exc) from exc

    def move(self, src: str, dst: str) -> None:
        source = self._resolve(src)
        target = self._resolve(dst)
        if not source.exists():
            raise StorageIOError("move", src, FileNotFoundError(str(source)))
        if target.exists():
            raise StorageIOError("move", dst, FileExistsError(str(target)))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(target))
        except OSError as exc:
            raise StorageIOError("move", src, exc) from exc

    def size(self, key: str) -> int:
        try:
            return self._resolve(key).stat().st_size
        except OSError as exc:
            raise StorageIOError("size", key, exc) from exc

    def mime_type(self, key: str) -> str:
        mime, _ = mimetypes.guess_type(str(self._resolve(key)))
        return mime or "application/octet-stream"
