"""Schemas for permission API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..models.permission import PermissionLevel, TargetType


class GrantRequest(BaseModel):
    user_id: str
    level: PermissionLevel


class RevokeRequest(BaseModel):
    user_id: str


class GrantResponse(BaseModel):
    id: str
    user_id: str
    target_id: str
    target_type: str
    level: str
    inherited_from: Optional[str] = None
    granted_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RevokeResponse(BaseModel):
    target_id: str
    user_id: str
    removed: int


class CheckResponse(BaseModel):
    target_id: str
    target_type: TargetType
    level: PermissionLevel
    allowed: bool
