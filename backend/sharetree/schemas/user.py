"""Schemas for users, storage usage, favorites and repairs."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from ..models.permission import TargetType
from .common import StorageWarning
from .folder import FolderResponse


class UserCreate(BaseModel):
    display_name: str
    email: Optional[str] = None
    role: str = "user"
    is_superadmin: bool = False
    user_id: Optional[str] = None

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ("user", "admin"):
            raise ValueError("Role must be 'user' or 'admin'")
        return v


class UserResponse(BaseModel):
    user_id: str
    display_name: str
    email: Optional[str] = None
    role: str
    is_superadmin: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreatedResponse(BaseModel):
    user: UserResponse
    root_folder: FolderResponse
    warnings: List[StorageWarning] = []


class StorageUsageResponse(BaseModel):
    user_id: str
    used_bytes: int
    used: str
    limit_bytes: int
    limit: str
    folder_count: int


class FavoriteRequest(BaseModel):
    target_id: str
    target_type: TargetType


class FavoriteResponse(BaseModel):
    target_id: str
    target_type: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RepairTaskResponse(BaseModel):
    id: str
    operation: str
    target_type: str
    target_id: str
    status: str
    error_message: Optional[str] = None
    retry_count: int = 0
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RepairRunResponse(BaseModel):
    completed: int
    requeued: int
    failed: int
