"""Schemas for the shared-with-me listing and name search."""

from typing import List

from pydantic import BaseModel

from .file import FileResponse
from .folder import ChildFile, ChildFolder, FolderResponse


class PageInfo(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int

    @classmethod
    def of(cls, page) -> "PageInfo":
        return cls(current_page=page.page, last_page=page.last_page, per_page=page.per_page, total=page.total)


class SharedFolderPage(BaseModel):
    items: List[ChildFolder]
    pagination: PageInfo


class SharedFilePage(BaseModel):
    items: List[ChildFile]
    pagination: PageInfo


class SharedWithMeResponse(BaseModel):
    """Deepest shared folders and every shared file, with the caller's level."""
    folders: SharedFolderPage
    files: SharedFilePage


class FolderPage(BaseModel):
    items: List[FolderResponse]
    pagination: PageInfo


class FilePage(BaseModel):
    items: List[FileResponse]
    pagination: PageInfo


class SearchResponse(BaseModel):
    own_folders: FolderPage
    own_files: FilePage
    shared_folders: FolderPage
    shared_files: FilePage
