"""Repository for file rows."""

import uuid
from typing import Iterable, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Query

from ..models.file import File
from ..models.permission import PermissionGrant, TargetType
from ..exceptions import FileRecordNotFoundError
from .base import BaseRepository


class FileRepository(BaseRepository[File]):
    """Data access for the files table. Flush only, never commit."""

    model_class = File
    not_found_error = FileRecordNotFoundError

    def create(
        self,
        name: str,
        folder_id: str,
        owner_id: str,
        storage_key: str,
        size_bytes: int,
        mime_type: str,
    ) -> File:
        stored = File(
            id=str(uuid.uuid4()),
            name=name,
            folder_id=folder_id,
            owner_id=owner_id,
            storage_key=storage_key,
            size_bytes=size_bytes,
            mime_type=mime_type,
            needs_repair=False,
        )
        return self.add(stored)

    def get_many(self, file_ids: Iterable[str]) -> List[File]:
        ids = list(file_ids)
        if not ids:
            return []
        return self.db.query(File).filter(File.id.in_(ids)).all()

    def name_exists(self, folder_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(File.id).filter(File.folder_id == folder_id, File.name == name)
        if exclude_id:
            query = query.filter(File.id != exclude_id)
        return query.first() is not None

    def list_in_folder(self, folder_id: str, offset: int = 0, limit: Optional[int] = None) -> List[File]:
        query = (
            self.db.query(File)
            .filter(File.folder_id == folder_id)
            .order_by(File.name, File.id)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_in_folder(self, folder_id: str) -> int:
        return self.db.query(File).filter(File.folder_id == folder_id).count()

    def _matching(self, owner_id: Optional[str], shared_with: Optional[str], name_contains: Optional[str]) -> Query:
        query = self.db.query(File)
        if owner_id is not None:
            query = query.filter(File.owner_id == owner_id)
        if shared_with is not None:
            query = query.join(
                PermissionGrant,
                and_(
                    PermissionGrant.target_type == TargetType.FILE.value,
                    PermissionGrant.target_id == File.id,
                    PermissionGrant.user_id == shared_with,
                ),
            )
        if name_contains:
            query = query.filter(File.name.icontains(name_contains, autoescape=True))
        return query

    def find(
        self,
        owner_id: Optional[str] = None,
        shared_with: Optional[str] = None,
        name_contains: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[File]:
        query = self._matching(owner_id, shared_with, name_contains).order_by(File.name, File.id).offset(offset)
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

    def total_size_by_owner(self, owner_id: str) -> int:
        total = self.db.query(func.coalesce(func.sum(File.size_bytes), 0)).filter(File.owner_id == owner_id).scalar()
        return int(total or 0)

    def set_needs_repair(self, file_id: str, flag: bool) -> None:
        (
            self.db.query(File)
            .filter(File.id == file_id)
            .update({File.needs_repair: flag}, synchronize_session="fetch")
        )
        self.db.flush()

    def delete_many(self, file_ids: Iterable[str]) -> int:
        ids = list(file_ids)
        if not ids:
            return 0
        count = self.db.query(File).filter(File.id.in_(ids)).delete(synchronize_session="fetch")
        self.db.flush()
        return count

    def delete_in_folders(self, folder_ids: Iterable[str]) -> int:
        ids = list(folder_ids)
        if not ids:
            return 0
        count = self.db.query(File).filter(File.folder_id.in_(ids)).delete(synchronize_session="fetch")
        self.db.flush()
        return count
