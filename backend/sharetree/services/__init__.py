"""Business logic services."""

from .path_service import PathService, SubtreeIndex
from .size_service import SizeService, SubtreeStats, format_size
from .permission_service import PermissionService, ResolvedTarget
from .propagation_service import PropagationService
from .repair_service import RepairService, StorageEffect
from .mutation_service import MutationService, MutationOutcome, FolderListing
from .favorite_service import FavoriteService
from .user_service import UserService, UserCreated

__all__ = [
    "PathService", "SubtreeIndex",
    "SizeService", "SubtreeStats", "format_size",
    "PermissionService", "ResolvedTarget",
    "PropagationService",
    "RepairService", "StorageEffect",
    "MutationService", "MutationOutcome", "FolderListing",
    "FavoriteService",
    "UserService", "UserCreated",
]
