"""Folder API: create, rename, move, delete, listing, paths and sizes.

Thin layer over MutationService; every rule lives in the services.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import IdentityContext, require_identity
from ..database import get_db
from ..models.permission import TargetType
from ..schemas.common import DeleteResponse, warnings_of
from ..schemas.file import FileResponse
from ..schemas.folder import (
    ChildFile,
    ChildFolder,
    DisplayPathResponse,
    FolderBatchDelete,
    FolderChildrenResponse,
    FolderCreate,
    FolderMove,
    FolderMutationResponse,
    FolderRename,
    FolderResponse,
    SubtreeStatsResponse,
)
from ..services.mutation_service import FolderListing, MutationOutcome, MutationService
from ..storage import ObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["folders"])


def _service(db: Session, store: ObjectStore) -> MutationService:
    return MutationService(db, store)


def _folder_result(outcome: MutationOutcome) -> FolderMutationResponse:
    return FolderMutationResponse(
        folder=FolderResponse.model_validate(outcome.folders[0]),
        warnings=warnings_of(outcome.warnings),
    )


def _listing(listing: FolderListing) -> FolderChildrenResponse:
    return FolderChildrenResponse(
        folder=FolderResponse.model_validate(listing.folder),
        display_path=listing.display_path,
        permission=listing.level.value,
        folders=[
            ChildFolder(**FolderResponse.model_validate(f).model_dump(), permission=listing.levels[f.id].value)
            for f in listing.subfolders
        ],
        files=[
            ChildFile(**FileResponse.model_validate(f).model_dump(), permission=listing.levels[f.id].value)
            for f in listing.files
        ],
        total_folders=listing.total_folders,
        total_files=listing.total_files,
        page=listing.page,
        page_size=listing.page_size,
        has_more=listing.has_more,
    )


@router.post("", response_model=FolderMutationResponse, status_code=201)
def create_folder(
    data: FolderCreate,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    """Create a folder (in the caller's root when parent_id is omitted)."""
    outcome = _service(db, store).create_folder(identity, data.parent_id, data.name)
    return _folder_result(outcome)


@router.get("/children", response_model=FolderChildrenResponse)
def list_root_children(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    """List the caller's root folder."""
    return _listing(_service(db, store).list_children(identity, None, page, page_size))


@router.post("/delete", response_model=DeleteResponse)
def delete_folders(
    data: FolderBatchDelete,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    """Delete several folders and everything inside them, all or nothing."""
    outcome = _service(db, store).delete_folders(identity, data.folder_ids)
    return DeleteResponse(deleted_ids=outcome.deleted_ids, warnings=warnings_of(outcome.warnings))


@router.get("/{folder_id}/children", response_model=FolderChildrenResponse)
def list_children(
    folder_id: str,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    return _listing(_service(db, store).list_children(identity, folder_id, page, page_size))


@router.patch("/{folder_id}/rename", response_model=FolderMutationResponse)
def rename_folder(
    folder_id: str,
    data: FolderRename,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    return _folder_result(_service(db, store).rename_folder(identity, folder_id, data.name))


@router.post("/{folder_id}/move", response_model=FolderMutationResponse)
def move_folder(
    folder_id: str,
    data: FolderMove,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    return _folder_result(_service(db, store).move_folder(identity, folder_id, data.parent_id))


@router.delete("/{folder_id}", response_model=DeleteResponse)
def delete_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    outcome = _service(db, store).delete_folders(identity, [folder_id])
    return DeleteResponse(deleted_ids=outcome.deleted_ids, warnings=warnings_of(outcome.warnings))


@router.get("/{folder_id}/path", response_model=DisplayPathResponse)
def get_display_path(
    folder_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    path = _service(db, store).get_display_path(identity, folder_id, TargetType.FOLDER)
    return DisplayPathResponse(id=folder_id, type=TargetType.FOLDER.value, display_path=path)


@router.get("/{folder_id}/size", response_model=SubtreeStatsResponse)
def calculate_subtree_size(
    folder_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    stats = _service(db, store).calculate_subtree_size(identity, folder_id)
    return SubtreeStatsResponse(
        folder_id=stats.folder_id,
        total_bytes=stats.total_bytes,
        total_size=stats.total_size,
        folder_count=stats.folder_count,
        file_count=stats.file_count,
        direct_folder_count=stats.direct_folder_count,
        direct_file_count=stats.direct_file_count,
    )
