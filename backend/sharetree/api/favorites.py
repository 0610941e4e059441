"""Favorites API."""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..core.auth import IdentityContext, require_identity
from ..database import get_db
from ..models.permission import TargetType
from ..schemas.user import FavoriteRequest, FavoriteResponse
from ..services.favorite_service import FavoriteService

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


@router.get("", response_model=List[FavoriteResponse])
def list_favorites(
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    return FavoriteService(db).list_for_user(identity)


@router.post("", response_model=FavoriteResponse, status_code=201)
def mark_favorite(
    data: FavoriteRequest,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    return FavoriteService(db).mark(identity, data.target_id, data.target_type)


@router.delete("/{target_type}/{target_id}", status_code=204)
def unmark_favorite(
    target_type: TargetType,
    target_id: str,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_identity),
):
    FavoriteService(db).unmark(identity, target_id, target_type)
    return Response(status_code=204)
