"""File API: create, upload, rename, move, delete and display paths."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..core.auth import IdentityContext, require_identity
from ..database import get_db
from ..models.permission import TargetType
from ..schemas.common import DeleteResponse, warnings_of
from ..schemas.file import (
    FileBatchDelete,
    FileCreate,
    FileMove,
    FileMutationResponse,
    FileRename,
    FileResponse,
)
from ..schemas.folder import DisplayPathResponse
from ..services.mutation_service import MutationOutcome, MutationService
from ..storage import ObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


def _file_result(outcome: MutationOutcome) -> FileMutationResponse:
    return FileMutationResponse(
        file=FileResponse.model_validate(outcome.files[0]),
        warnings=warnings_of(outcome.warnings),
    )


@router.post("", response_model=FileMutationResponse, status_code=201)
def create_file(
    data: FileCreate,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    """Create a text file from the given content."""
    outcome = MutationService(db, store).create_file(identity, data.folder_id, data.name, data.content)
    return _file_result(outcome)


@router.post("/upload", response_model=FileMutationResponse, status_code=201)
def upload_file(
    upload: UploadFile = File(...),
    name: Optional[str] = Form(None),
    folder_id: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    """Upload one file part. The part name is used unless ``name`` is given."""
    data = upload.file.read()
    outcome = MutationService(db, store).upload_file(
        identity, folder_id, name or upload.filename or "", data, upload.content_type
    )
    return _file_result(outcome)


@router.post("/delete", response_model=DeleteResponse)
def delete_files(
    data: FileBatchDelete,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    outcome = MutationService(db, store).delete_files(identity, data.file_ids)
    return DeleteResponse(deleted_ids=outcome.deleted_ids, warnings=warnings_of(outcome.warnings))


@router.patch("/{file_id}/rename", response_model=FileMutationResponse)
def rename_file(
    file_id: str,
    data: FileRename,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    return _file_result(MutationService(db, store).rename_file(identity, file_id, data.name))


@router.post("/{file_id}/move", response_model=FileMutationResponse)
def move_file(
    file_id: str,
    data: FileMove,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    return _file_result(MutationService(db, store).move_file(identity, file_id, data.folder_id))


@router.delete("/{file_id}", response_model=DeleteResponse)
def delete_file(
    file_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    outcome = MutationService(db, store).delete_files(identity, [file_id])
    return DeleteResponse(deleted_ids=outcome.deleted_ids, warnings=warnings_of(outcome.warnings))


@router.get("/{file_id}/path", response_model=DisplayPathResponse)
def get_display_path(
    file_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    path = MutationService(db, store).get_display_path(identity, file_id, TargetType.FILE)
    return DisplayPathResponse(id=file_id, type=TargetType.FILE.value, display_path=path)
