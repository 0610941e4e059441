"""Subtree sizes, counts and per-user storage usage."""

import logging
from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import StorageQuotaExceededError
from ..repositories.file_repository import FileRepository
from ..repositories.folder_repository import FolderRepository
from .path_service import PathService, SubtreeIndex

logger = logging.getLogger(__name__)


def format_size(size_bytes: int) -> str:
    """Human-readable size: ``1.50 GB``, ``12.00 KB``, ``1 byte``, ``0 bytes``."""
    if size_bytes >= 1024 ** 3:
        return f"{size_bytes / 1024 ** 3:.2f} GB"
    if size_bytes >= 1024 ** 2:
        return f"{size_bytes / 1024 ** 2:.2f} MB"
    if size_bytes >= 1024:
        return f"{size_bytes / 1024:.2f} KB"
    if size_bytes == 1:
        return "1 byte"
    return f"{size_bytes} bytes"


@dataclass
class SubtreeStats:
    folder_id: str
    total_bytes: int
    folder_count: int
    file_count: int
    direct_folder_count: int
    direct_file_count: int

    @property
    def total_size(self) -> str:
        return format_size(self.total_bytes)


def _recompute(index: SubtreeIndex) -> Dict[str, int]:
    """Byte total of every folder in the index, children before parents."""
    totals: Dict[str, int] = {}
    for folder in index.bottom_up():
        own = sum(f.size_bytes or 0 for f in index.files.get(folder.id, []))
        nested = sum(totals[c] for c in index.children.get(folder.id, []))
        totals[folder.id] = own + nested
    return totals


class SizeService:
    """Aggregation over the folder tree.

    ``folders.size_bytes`` is maintained incrementally by the mutation
    service, so reading a subtree size is O(1). The recompute helpers walk
    the bulk-loaded subtree and are used for verification and repair.
    """

    def __init__(self, db: Session):
        self.db = db
        self.paths = PathService(db)
        self.folders = FolderRepository(db)
        self.files = FileRepository(db)

    def subtree_size(self, folder_id: str) -> int:
        return self.folders.get_by_id(folder_id).size_bytes or 0

    def recompute_subtree_size(self, folder_id: str) -> int:
        return _recompute(self.paths.subtree(folder_id))[folder_id]

    def subtree_stats(self, folder_id: str) -> SubtreeStats:
        index = self.paths.subtree(folder_id)
        totals = _recompute(index)
        return SubtreeStats(
            folder_id=folder_id,
            total_bytes=totals[folder_id],
            folder_count=len(index.folders) - 1,
            file_count=len(index.file_list),
            direct_folder_count=len(index.children.get(folder_id, [])),
            direct_file_count=len(index.files.get(folder_id, [])),
        )

    def verify_and_repair_counters(self, folder_id: str) -> List[str]:
        """Recompute every counter in the subtree and fix mismatches.

        Returns the ids of corrected folders. Flushes only.
        """
        index = self.paths.subtree(folder_id)
        corrected = []
        for fid, actual in _recompute(index).items():
            folder = index.folders[fid]
            if (folder.size_bytes or 0) != actual:
                logger.warning(
                    "Size counter drift corrected",
                    extra={"folder_id": fid, "stored": folder.size_bytes, "actual": actual},
                )
                folder.size_bytes = actual
                corrected.append(fid)
        if corrected:
            self.db.flush()
        return corrected

    def storage_usage(self, user_id: str) -> int:
        """Bytes of every file the user owns, wherever it lives."""
        return self.files.total_size_by_owner(user_id)

    def check_quota(self, user_id: str, incoming_bytes: int) -> None:
        """Raise StorageQuotaExceededError if the upload would pass the limit."""
        limit = settings.storage_limit_bytes
        if limit <= 0:
            return
        used = self.storage_usage(user_id)
        if used + incoming_bytes > limit:
            raise StorageQuotaExceededError(used, limit)

    def count_user_folders(self, user_id: str) -> int:
        return self.folders.count_by_owner(user_id, include_root=False)
