"""Schemas for file API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from .common import StorageWarning


class FileCreate(BaseModel):
    """Create a text file. Omit folder_id to create it in your root folder."""
    name: str
    folder_id: Optional[str] = None
    content: str = ""


class FileRename(BaseModel):
    name: str


class FileMove(BaseModel):
    folder_id: str


class FileBatchDelete(BaseModel):
    file_ids: List[str]

    @field_validator('file_ids')
    @classmethod
    def validate_ids(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("file_ids cannot be empty")
        return v


class FileResponse(BaseModel):
    id: str
    name: str
    folder_id: str
    owner_id: str
    size_bytes: int = 0
    mime_type: str
    needs_repair: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FileMutationResponse(BaseModel):
    file: FileResponse
    warnings: List[StorageWarning] = []
