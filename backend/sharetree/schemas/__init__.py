"""Pydantic schemas for API validation."""

from .common import StorageWarning, DeleteResponse, warnings_of
from .file import (
    FileCreate,
    FileRename,
    FileMove,
    FileBatchDelete,
    FileResponse,
    FileMutationResponse,
)
from .folder import (
    FolderCreate,
    FolderRename,
    FolderMove,
    FolderBatchDelete,
    FolderResponse,
    FolderMutationResponse,
    FolderChildrenResponse,
    DisplayPathResponse,
    SubtreeStatsResponse,
)
from .listing import PageInfo, SharedWithMeResponse, SearchResponse
from .permission import GrantRequest, RevokeRequest, GrantResponse, RevokeResponse, CheckResponse
from .user import (
    UserCreate,
    UserResponse,
    UserCreatedResponse,
    StorageUsageResponse,
    FavoriteRequest,
    FavoriteResponse,
    RepairTaskResponse,
    RepairRunResponse,
)

__all__ = [
    "StorageWarning", "DeleteResponse", "warnings_of",
    "FileCreate", "FileRename", "FileMove", "FileBatchDelete", "FileResponse", "FileMutationResponse",
    "FolderCreate", "FolderRename", "FolderMove", "FolderBatchDelete", "FolderResponse",
    "FolderMutationResponse", "FolderChildrenResponse", "DisplayPathResponse", "SubtreeStatsResponse",
    "PageInfo", "SharedWithMeResponse", "SearchResponse",
    "GrantRequest", "RevokeRequest", "GrantResponse", "RevokeResponse", "CheckResponse",
    "UserCreate", "UserResponse", "UserCreatedResponse", "StorageUsageResponse",
    "FavoriteRequest", "FavoriteResponse", "RepairTaskResponse", "RepairRunResponse",
]
