"""Repository for permission grants."""

import uuid
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import or_

from ..models.permission import PermissionGrant, PermissionLevel, TargetType


class PermissionRepository:
    """Data access for permission_grants. Flush only, never commit."""

    def __init__(self, db):
        self.db = db

    def get(self, user_id: str, target_type: TargetType, target_id: str) -> Optional[PermissionGrant]:
        return (
            self.db.query(PermissionGrant)
            .filter(
                PermissionGrant.user_id == user_id,
                PermissionGrant.target_type == target_type.value,
                PermissionGrant.target_id == target_id,
            )
            .first()
        )

    def list_for_target(self, target_type: TargetType, target_id: str) -> List[PermissionGrant]:
        return (
            self.db.query(PermissionGrant)
            .filter(
                PermissionGrant.target_type == target_type.value,
                PermissionGrant.target_id == target_id,
            )
            .order_by(PermissionGrant.created_at, PermissionGrant.user_id)
            .all()
        )

    def list_for_user(self, user_id: str, target_type: TargetType) -> List[PermissionGrant]:
        """Every grant the user holds on nodes of one type, explicit or inherited."""
        return (
            self.db.query(PermissionGrant)
            .filter(
                PermissionGrant.user_id == user_id,
                PermissionGrant.target_type == target_type.value,
            )
            .all()
        )

    def grants_for_user(
        self,
        user_id: str,
        folder_ids: Iterable[str] = (),
        file_ids: Iterable[str] = (),
    ) -> Dict[Tuple[str, str], PermissionGrant]:
        """The user's grants on the given nodes keyed by ``(target_type, target_id)``."""
        folder_ids, file_ids = list(folder_ids), list(file_ids)
        clauses = []
        if folder_ids:
            clauses.append(
                (PermissionGrant.target_type == TargetType.FOLDER.value)
                & PermissionGrant.target_id.in_(folder_ids)
            )
        if file_ids:
            clauses.append(
                (PermissionGrant.target_type == TargetType.FILE.value)
                & PermissionGrant.target_id.in_(file_ids)
            )
        if not clauses:
            return {}
        rows = (
            self.db.query(PermissionGrant)
            .filter(PermissionGrant.user_id == user_id, or_(*clauses))
            .all()
        )
        return {(g.target_type, g.target_id): g for g in rows}

    def create(
        self,
        user_id: str,
        target_type: TargetType,
        target_id: str,
        level: PermissionLevel,
        granted_by: Optional[str],
        inherited_from: Optional[str] = None,
    ) -> PermissionGrant:
        grant = PermissionGrant(
            id=str(uuid.uuid4()),
            user_id=user_id,
            target_type=target_type.value,
            target_id=target_id,
            level=level.value,
            granted_by=granted_by,
            inherited_from=inherited_from,
        )
        self.db.add(grant)
        self.db.flush()
        return grant

    def list_inherited_from(self, user_id: str, source_id: str) -> List[PermissionGrant]:
        return (
            self.db.query(PermissionGrant)
            .filter(PermissionGrant.user_id == user_id, PermissionGrant.inherited_from == source_id)
            .all()
        )

    def delete(self, grant: PermissionGrant) -> None:
        self.db.delete(grant)
        self.db.flush()

    def delete_inherited_from(self, user_id: str, source_id: str) -> int:
        count = (
            self.db.query(PermissionGrant)
            .filter(PermissionGrant.user_id == user_id, PermissionGrant.inherited_from == source_id)
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return count

    def delete_for_targets(self, target_type: TargetType, target_ids: Iterable[str]) -> int:
        """Remove every grant (any user) attached to the given nodes."""
        ids = list(target_ids)
        if not ids:
            return 0
        count = (
            self.db.query(PermissionGrant)
            .filter(
                PermissionGrant.target_type == target_type.value,
                PermissionGrant.target_id.in_(ids),
            )
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return count

    def delete_inherited_outside(
        self,
        folder_ids: Iterable[str],
        file_ids: Iterable[str],
        source_ids: Set[str],
    ) -> int:
        """Drop grants on the given nodes that were propagated from ``source_ids``."""
        folder_ids, file_ids = list(folder_ids), list(file_ids)
        if not source_ids or not (folder_ids or file_ids):
            return 0
        clauses = []
        if folder_ids:
            clauses.append(
                (PermissionGrant.target_type == TargetType.FOLDER.value)
                & PermissionGrant.target_id.in_(folder_ids)
            )
        if file_ids:
            clauses.append(
                (PermissionGrant.target_type == TargetType.FILE.value)
                & PermissionGrant.target_id.in_(file_ids)
            )
        count = (
            self.db.query(PermissionGrant)
            .filter(or_(*clauses), PermissionGrant.inherited_from.in_(list(source_ids)))
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return count
