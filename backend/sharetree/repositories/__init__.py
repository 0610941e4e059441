"""Data access repositories."""

from .base import BaseRepository
from .tree_repository import TreeRepository
from .folder_repository import FolderRepository
from .file_repository import FileRepository
from .permission_repository import PermissionRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "TreeRepository",
    "FolderRepository",
    "FileRepository",
    "PermissionRepository",
    "UserRepository",
]
