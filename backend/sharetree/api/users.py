"""User API: provisioning, identity and storage usage."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import IdentityContext, require_admin, require_identity
from ..database import get_db
from ..schemas.common import warnings_of
from ..schemas.folder import FolderResponse
from ..schemas.user import StorageUsageResponse, UserCreate, UserCreatedResponse, UserResponse
from ..services.size_service import format_size
from ..services.user_service import UserService
from ..storage import ObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _usage(service: UserService, user_id: str) -> StorageUsageResponse:
    used, limit, folder_count = service.storage_usage(user_id)
    return StorageUsageResponse(
        user_id=user_id,
        used_bytes=used,
        used=format_size(used),
        limit_bytes=limit,
        limit=format_size(limit) if limit else "unlimited",
        folder_count=folder_count,
    )


@router.post("", response_model=UserCreatedResponse, status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    admin: IdentityContext = Depends(require_admin),
):
    """Create a user together with their root folder. Admin only."""
    created = UserService(db, store).create_user(
        display_name=data.display_name,
        email=data.email,
        role=data.role,
        is_superadmin=data.is_superadmin,
        user_id=data.user_id,
        created_by=admin.user_id,
    )
    return UserCreatedResponse(
        user=UserResponse.model_validate(created.user),
        root_folder=FolderResponse.model_validate(created.root),
        warnings=warnings_of(created.warnings),
    )


@router.get("/me", response_model=UserResponse)
def get_me(
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    return UserService(db, store).get_user(identity.user_id)


@router.get("/me/storage", response_model=StorageUsageResponse)
def get_my_storage(
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    return _usage(UserService(db, store), identity.user_id)


@router.get("/{user_id}/storage", response_model=StorageUsageResponse)
def get_user_storage(
    user_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    admin: IdentityContext = Depends(require_admin),
):
    """Storage usage of any user. Admin only."""
    return _usage(UserService(db, store), user_id)
