"""Permission checking: the one place where access rules are defined.

Rules, in order:
    1. The target must exist (NotFound otherwise).
    2. Owning the target or any folder above it grants full access.
    3. An unrestricted admin is allowed; a restricted admin is denied.
    4. Walking nearest-first (file, its folder, then ancestors), the first
       grant whose level satisfies the requirement allows. A lower grant
       does not stop the walk.
    5. Nothing found means no access.

Levels: write implies read.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.auth import IdentityContext
from ..exceptions import (
    FileRecordNotFoundError,
    FolderNotFoundError,
    PermissionDeniedError,
    RootFolderProtectedError,
)
from ..models.file import File
from ..models.folder import Folder
from ..models.permission import PermissionLevel, TargetType
from ..repositories.file_repository import FileRepository
from ..repositories.permission_repository import PermissionRepository
from ..repositories.tree_repository import TreeRepository

logger = logging.getLogger(__name__)


@dataclass
class ResolvedTarget:
    """A node together with its folder ancestry, nearest first.

    For a file, ``chain`` starts at the folder holding it.
    """

    target_type: TargetType
    chain: List[Folder]
    file: Optional[File] = None

    @property
    def target_id(self) -> str:
        return self.file.id if self.file is not None else self.chain[0].id

    @property
    def folder(self) -> Folder:
        return self.chain[0]

    @property
    def node(self):
        return self.file if self.file is not None else self.chain[0]

    @property
    def is_root_folder(self) -> bool:
        return self.file is None and self.chain[0].parent_id is None

    def owned_by(self, user_id: str) -> bool:
        if self.file is not None and self.file.owner_id == user_id:
            return True
        return any(f.owner_id == user_id for f in self.chain)


class PermissionService:
    """Resolves access for an identity on a folder or file.

    Public methods:
        resolve          -- load a target and its ancestry (NotFound if absent)
        effective_level  -- level the caller holds, or None
        check            -- bool answer for a required level
        require          -- authorization gate used by every operation
        child_levels     -- bulk effective levels for a folder's children
    """

    def __init__(self, db: Session):
        self.db = db
        self.tree = TreeRepository(db)
        self.files = FileRepository(db)
        self.grants = PermissionRepository(db)

    def resolve(self, target_id: str, target_type: TargetType) -> ResolvedTarget:
        if target_type == TargetType.FILE:
            stored = self.files.get_by_id(target_id)
            chain = self.tree.ancestor_chain(stored.folder_id)
            return ResolvedTarget(TargetType.FILE, chain, stored)

        chain = self.tree.ancestor_chain(target_id)
        if not chain:
            raise FolderNotFoundError(target_id)
        return ResolvedTarget(TargetType.FOLDER, chain)

    def effective_level(self, identity: IdentityContext, target: ResolvedTarget) -> Optional[PermissionLevel]:
        """Highest level the caller holds anywhere on the target chain, or None."""
        if target.owned_by(identity.user_id):
            return PermissionLevel.WRITE
        if identity.is_unrestricted_admin:
            return PermissionLevel.WRITE
        if identity.is_restricted_admin:
            return None

        file_ids = [target.file.id] if target.file is not None else []
        found = self.grants.grants_for_user(
            identity.user_id, folder_ids=[f.id for f in target.chain], file_ids=file_ids
        )
        held = None
        for grant in found.values():
            held = _higher(held, grant.permission_level)
            if held == PermissionLevel.WRITE:
                break
        return held

    def check(
        self,
        identity: IdentityContext,
        target_id: str,
        target_type: TargetType,
        level: PermissionLevel,
    ) -> bool:
        """Whether ``identity`` holds ``level`` on the target. NotFound if absent."""
        target = self.resolve(target_id, target_type)
        held = self.effective_level(identity, target)
        return held is not None and held.satisfies(level)

    def require(
        self,
        identity: IdentityContext,
        target_id: str,
        target_type: TargetType,
        level: PermissionLevel,
        protect_root_for: Optional[str] = None,
    ) -> ResolvedTarget:
        """Resolve the target and demand ``level`` on it.

        A target the caller cannot even read is reported as not found.
        ``protect_root_for`` names the action when root folders must be
        refused; that check runs right after the existence check.
        """
        target = self.resolve(target_id, target_type)
        if protect_root_for and target.is_root_folder:
            raise RootFolderProtectedError(target.target_id, protect_root_for)

        held = self.effective_level(identity, target)
        if held is None:
            logger.info(
                "Access hidden",
                extra={"user_id": identity.user_id, "target_id": target_id, "target_type": target_type.value},
            )
            if target_type == TargetType.FILE:
                raise FileRecordNotFoundError(target_id)
            raise FolderNotFoundError(target_id)
        if not held.satisfies(level):
            raise PermissionDeniedError(
                f"{level.value.capitalize()} access required", target_id=target_id
            )
        return target

    def child_levels(
        self,
        identity: IdentityContext,
        parent: ResolvedTarget,
        folders: Iterable[Folder],
        files: Iterable[File],
    ) -> Dict[str, PermissionLevel]:
        """Effective level on each child of a folder the caller can read."""
        folders, files = list(folders), list(files)
        base = self.effective_level(identity, parent)
        levels: Dict[str, PermissionLevel] = {}
        if base is None:
            return levels

        if parent.owned_by(identity.user_id) or identity.is_unrestricted_admin:
            for node in [*folders, *files]:
                levels[node.id] = PermissionLevel.WRITE
            return levels

        found = self.grants.grants_for_user(
            identity.user_id,
            folder_ids=[f.id for f in folders],
            file_ids=[f.id for f in files],
        )
        for node, kind in [(f, TargetType.FOLDER) for f in folders] + [(f, TargetType.FILE) for f in files]:
            if node.owner_id == identity.user_id:
                levels[node.id] = PermissionLevel.WRITE
                continue
            grant = found.get((kind.value, node.id))
            levels[node.id] = _higher(base, grant.permission_level) if grant is not None else base
        return levels


def _higher(a: Optional[PermissionLevel], b: Optional[PermissionLevel]) -> Optional[PermissionLevel]:
    if a is None:
        return b
    if b is None:
        return a
    return PermissionLevel.WRITE if PermissionLevel.WRITE in (a, b) else PermissionLevel.READ
