"""Database models."""

from .user import User, AuditLog
from .folder import Folder
from .file import File
from .permission import PermissionGrant, PermissionLevel, TargetType
from .favorite import FavoriteMark
from .repair_task import RepairTask

__all__ = [
    "User", "AuditLog",
    "Folder", "File",
    "PermissionGrant", "PermissionLevel", "TargetType",
    "FavoriteMark",
    "RepairTask",
]
