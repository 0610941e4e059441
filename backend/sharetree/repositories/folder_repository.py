"""Repository for folder rows."""

import uuid
from typing import Iterable, List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Query

from ..models.folder import Folder
from ..models.permission import PermissionGrant, TargetType
from ..exceptions import FolderNotFoundError
from .base import BaseRepository


class FolderRepository(BaseRepository[Folder]):
    """Data access for the folders table. Flush only, never commit."""

    model_class = Folder
    not_found_error = FolderNotFoundError

    def create(self, name: str, owner_id: str, parent_id: Optional[str], storage_key: str) -> Folder:
        folder = Folder(
            id=str(uuid.uuid4()),
            name=name,
            owner_id=owner_id,
            parent_id=parent_id,
            storage_key=storage_key,
            size_bytes=0,
            needs_repair=False,
        )
        return self.add(folder)

    def get_root(self, owner_id: str) -> Optional[Folder]:
        return (
            self.db.query(Folder)
            .filter(Folder.owner_id == owner_id, Folder.parent_id.is_(None))
            .first()
        )

    def get_many(self, folder_ids: Iterable[str]) -> List[Folder]:
        ids = list(folder_ids)
        if not ids:
            return []
        return self.db.query(Folder).filter(Folder.id.in_(ids)).all()

    def sibling_name_exists(self, parent_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
        """Whether a sibling folder under ``parent_id`` already uses ``name``."""
        query = self.db.query(Folder.id).filter(Folder.parent_id == parent_id, Folder.name == name)
        if exclude_id:
            query = query.filter(Folder.id != exclude_id)
        return query.first() is not None

    def list_children(self, parent_id: str, offset: int = 0, limit: Optional[int] = None) -> List[Folder]:
        query = (
            self.db.query(Folder)
            .filter(Folder.parent_id == parent_id)
            .order_by(Folder.name, Folder.id)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_children(self, parent_id: str) -> int:
        return self.db.query(Folder).filter(Folder.parent_id == parent_id).count()

    def _matching(self, owner_id: Optional[str], shared_with: Optional[str], name_contains: Optional[str]) -> Query:
        query = self.db.query(Folder)
        if owner_id is not None:
            query = query.filter(Folder.owner_id == owner_id)
        if shared_with is not None:
            query = query.join(
                PermissionGrant,
                and_(
                    PermissionGrant.target_type == TargetType.FOLDER.value,
                    PermissionGrant.target_id == Folder.id,
                    PermissionGrant.user_id == shared_with,
                ),
            )
        if name_contains:
            query = query.filter(Folder.name.icontains(name_contains, autoescape=True))
        return query

    def find(
        self,
        owner_id: Optional[str] = None,
        shared_with: Optional[str] = None,
        name_contains: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Folder]:
        """Folders owned by ``owner_id`` and/or granted to ``shared_with``, by name."""
        query = self._matching(owner_id, shared_with, name_contains).order_by(Folder.name, Folder.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_matching(
        self,
        owner_id: Optional[str] = None,
        shared_with: Optional[str] = None,
        name_contains: Optional[str] = None,
    ) -> int:
        return self._matching(owner_id, shared_with, name_contains).count()

    def count_by_owner(self, owner_id: str, include_root: bool = False) -> int:
        query = self.db.query(Folder).filter(Folder.owner_id == owner_id)
        if not include_root:
            query = query.filter(Folder.parent_id.isnot(None))
        return query.count()

    def add_size(self, folder_ids: Iterable[str], delta: int) -> None:
        """Shift the size counter of every listed folder by ``delta`` bytes."""
        ids = list(folder_ids)
        if not ids or delta == 0:
            return
        (
            self.db.query(Folder)
            .filter(Folder.id.in_(ids))
            .update({Folder.size_bytes: Folder.size_bytes + delta}, synchronize_session="fetch")
        )
        self.db.flush()

    def set_needs_repair(self, folder_id: str, flag: bool) -> None:
        (
            self.db.query(Folder)
            .filter(Folder.id == folder_id)
            .update({Folder.needs_repair: flag}, synchronize_session="fetch")
        )
        self.db.flush()

    def delete_many(self, folder_ids: Iterable[str]) -> int:
        """Delete folder rows in one statement so parent and child go together."""
        ids = list(folder_ids)
        if not ids:
            return 0
        count = (
            self.db.query(Folder)
            .filter(Folder.id.in_(ids))
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return count
