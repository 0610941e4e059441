"""Permission API: owner-managed grants on folders and files, and checks."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import IdentityContext, require_identity
from ..database import get_db
from ..models.permission import PermissionLevel, TargetType
from ..schemas.file import FileResponse
from ..schemas.folder import ChildFile, ChildFolder, FolderResponse
from ..schemas.listing import PageInfo, SharedFilePage, SharedFolderPage, SharedWithMeResponse
from ..schemas.permission import CheckResponse, GrantRequest, GrantResponse, RevokeResponse
from ..services.permission_service import PermissionService
from ..services.propagation_service import PropagationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/permissions", tags=["permissions"])


@router.get("/check", response_model=CheckResponse)
def check_permission(
    target_id: str = Query(...),
    target_type: TargetType = Query(TargetType.FOLDER),
    level: PermissionLevel = Query(PermissionLevel.READ),
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    """Whether the caller holds ``level`` on the target."""
    allowed = PermissionService(db).check(identity, target_id, target_type, level)
    return CheckResponse(target_id=target_id, target_type=target_type, level=level, allowed=allowed)


@router.get("/shared", response_model=SharedWithMeResponse)
def list_shared_with_me(
    folder_page: int = Query(1, ge=1),
    file_page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    """Folders and files other users have shared with the caller."""
    listing = PropagationService(db).list_shared(identity, folder_page, file_page, per_page)
    return SharedWithMeResponse(
        folders=SharedFolderPage(
            items=[
                ChildFolder(**FolderResponse.model_validate(f).model_dump(), permission=listing.levels[f.id].value)
                for f in listing.folders.items
            ],
            pagination=PageInfo.of(listing.folders),
        ),
        files=SharedFilePage(
            items=[
                ChildFile(**FileResponse.model_validate(f).model_dump(), permission=listing.levels[f.id].value)
                for f in listing.files.items
            ],
            pagination=PageInfo.of(listing.files),
        ),
    )


# -- Folders --------------------------------------------------------------

@router.get("/folders/{folder_id}", response_model=List[GrantResponse])
def list_folder_grants(
    folder_id: str,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    return PropagationService(db).list_grants(identity, folder_id, TargetType.FOLDER)


@router.post("/folders/{folder_id}", response_model=GrantResponse, status_code=201)
def grant_folder(
    folder_id: str,
    data: GrantRequest,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    """Grant a user access to a folder and everything below it."""
    return PropagationService(db).grant(identity, folder_id, data.user_id, data.level)


@router.put("/folders/{folder_id}", response_model=GrantResponse)
def change_folder_grant(
    folder_id: str,
    data: GrantRequest,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    return PropagationService(db).change(identity, folder_id, data.user_id, data.level)


@router.delete("/folders/{folder_id}/{user_id}", response_model=RevokeResponse)
def revoke_folder_grant(
    folder_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    removed = PropagationService(db).revoke(identity, folder_id, user_id)
    return RevokeResponse(target_id=folder_id, user_id=user_id, removed=removed)


# -- Files ----------------------------------------------------------------

@router.get("/files/{file_id}", response_model=List[GrantResponse])
def list_file_grants(
    file_id: str,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    return PropagationService(db).list_grants(identity, file_id, TargetType.FILE)


@router.post("/files/{file_id}", response_model=GrantResponse, status_code=201)
def grant_file(
    file_id: str,
    data: GrantRequest,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    return PropagationService(db).grant_file(identity, file_id, data.user_id, data.level)


@router.put("/files/{file_id}", response_model=GrantResponse)
def change_file_grant(
    file_id: str,
    data: GrantRequest,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    return PropagationService(db).change_file(identity, file_id, data.user_id, data.level)


@router.delete("/files/{file_id}/{user_id}", response_model=RevokeResponse)
def revoke_file_grant(
    file_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    removed = PropagationService(db).revoke_file(identity, file_id, user_id)
    return RevokeResponse(target_id=file_id, user_id=user_id, removed=removed)
