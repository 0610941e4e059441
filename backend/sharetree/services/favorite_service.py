"""Favorite marks on folders and files."""

import logging
from typing import Iterable, List

from sqlalchemy.orm import Session

from ..core.auth import IdentityContext
from ..database import unit_of_work
from ..models.favorite import FavoriteMark
from ..models.permission import PermissionLevel, TargetType
from .permission_service import PermissionService

logger = logging.getLogger(__name__)


class FavoriteService:
    """Mark, unmark and list a user's favorites.

    Marking requires read access; marking twice is a no-op.
    """

    def __init__(self, db: Session):
        self.db = db
        self.permissions = PermissionService(db)

    def mark(self, identity: IdentityContext, target_id: str, target_type: TargetType) -> FavoriteMark:
        with unit_of_work(self.db):
            self.permissions.require(identity, target_id, target_type, PermissionLevel.READ)
            existing = self._get(identity.user_id, target_id, target_type)
            if existing is not None:
                return existing
            mark = FavoriteMark(user_id=identity.user_id, target_id=target_id, target_type=target_type.value)
            self.db.add(mark)
        return mark

    def unmark(self, identity: IdentityContext, target_id: str, target_type: TargetType) -> bool:
        with unit_of_work(self.db):
            mark = self._get(identity.user_id, target_id, target_type)
            if mark is None:
                return False
            self.db.delete(mark)
        return True

    def list_for_user(self, identity: IdentityContext) -> List[FavoriteMark]:
        return (
            self.db.query(FavoriteMark)
            .filter(FavoriteMark.user_id == identity.user_id)
            .order_by(FavoriteMark.created_at.desc())
            .all()
        )

    def remove_for_targets(self, target_type: TargetType, target_ids: Iterable[str]) -> int:
        """Drop every user's marks on the given nodes. Flushes only."""
        ids = list(target_ids)
        if not ids:
            return 0
        count = (
            self.db.query(FavoriteMark)
            .filter(FavoriteMark.target_type == target_type.value, FavoriteMark.target_id.in_(ids))
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return count

    def _get(self, user_id: str, target_id: str, target_type: TargetType):
        return (
            self.db.query(FavoriteMark)
            .filter(
                FavoriteMark.user_id == user_id,
                FavoriteMark.target_id == target_id,
                FavoriteMark.target_type == target_type.value,
            )
            .first()
        )
