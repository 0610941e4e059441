"""Schemas for folder API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from .common import StorageWarning
from .file import FileResponse


class FolderCreate(BaseModel):
    """Create a folder. Omit parent_id to create it in your root folder."""
    name: str
    parent_id: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Folder name cannot be empty")
        return v


class FolderRename(BaseModel):
    name: str


class FolderMove(BaseModel):
    parent_id: str


class FolderBatchDelete(BaseModel):
    folder_ids: List[str]

    @field_validator('folder_ids')
    @classmethod
    def validate_ids(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("folder_ids cannot be empty")
        return v


class FolderResponse(BaseModel):
    """Folder in API responses. Storage keys are never exposed."""
    id: str
    name: str
    parent_id: Optional[str] = None
    owner_id: str
    size_bytes: int = 0
    needs_repair: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FolderMutationResponse(BaseModel):
    folder: FolderResponse
    warnings: List[StorageWarning] = []


class ChildFolder(FolderResponse):
    permission: str


class ChildFile(FileResponse):
    permission: str


class FolderChildrenResponse(BaseModel):
    """One page of a folder's contents: sub-folders first, then files."""
    folder: FolderResponse
    display_path: str
    permission: str
    folders: List[ChildFolder]
    files: List[ChildFile]
    total_folders: int
    total_files: int
    page: int
    page_size: int
    has_more: bool


class DisplayPathResponse(BaseModel):
    id: str
    type: str
    display_path: str


class SubtreeStatsResponse(BaseModel):
    folder_id: str
    total_bytes: int
    total_size: str
    folder_count: int
    file_count: int
    direct_folder_count: int
    direct_file_count: int
