"""Grant, change and revoke permissions across a folder subtree.

Propagated rows record the folder whose grant produced them in
``inherited_from``. Change and revoke act only on those rows, so an
explicit grant placed lower in the tree is never overwritten or removed
by an operation on an ancestor.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.auth import IdentityContext
from ..database import unit_of_work
from ..exceptions import (
    GrantConflictError,
    GrantNotFoundError,
    PermissionDeniedError,
    RootFolderProtectedError,
    ValidationError,
)
from ..models.file import File
from ..models.folder import Folder
from ..models.permission import PermissionGrant, PermissionLevel, TargetType
from ..repositories.file_repository import FileRepository
from ..repositories.folder_repository import FolderRepository
from ..repositories.permission_repository import PermissionRepository
from ..repositories.user_repository import UserRepository
from . import audit_service
from .pagination import Page, page_request, slice_page
from .path_service import PathService, SubtreeIndex
from .permission_service import PermissionService, ResolvedTarget

logger = logging.getLogger(__name__)


@dataclass
class SharedListing:
    """Folders and files shared with a user, paginated separately."""

    folders: Page[Folder]
    files: Page[File]
    levels: Dict[str, PermissionLevel] = field(default_factory=dict)


class PropagationService:
    """Owner-managed sharing of folders and files.

    Public methods:
        grant / change / revoke                -- folder grants, propagated
        grant_file / change_file / revoke_file -- single-file grants
        list_grants                            -- grants attached to a node
        list_shared                            -- what others have shared with the caller
    """

    def __init__(self, db: Session):
        self.db = db
        self.permissions = PermissionService(db)
        self.paths = PathService(db)
        self.grants = PermissionRepository(db)
        self.users = UserRepository(db)
        self.folders = FolderRepository(db)
        self.files = FileRepository(db)

    # -- Folder grants -----------------------------------------------------

    def grant(
        self,
        identity: IdentityContext,
        folder_id: str,
        user_id: str,
        level: PermissionLevel,
    ) -> PermissionGrant:
        with unit_of_work(self.db):
            target = self._managed_target(identity, folder_id, TargetType.FOLDER, "share")
            self._validate_grantee(target, user_id)
            if self.grants.get(user_id, TargetType.FOLDER, folder_id) is not None:
                raise GrantConflictError(user_id, folder_id)

            grant = self.grants.create(user_id, TargetType.FOLDER, folder_id, level, identity.user_id)
            created = self._fill_descendants(self.paths.subtree(folder_id), user_id, level, identity.user_id)
            audit_service.log(
                self.db, identity.user_id, "grant", "folder", folder_id,
                {"user_id": user_id, "level": level.value, "propagated": created},
            )

        logger.info(
            "Granted %s on folder %s to %s (%d descendants)", level.value, folder_id, user_id, created
        )
        return grant

    def change(
        self,
        identity: IdentityContext,
        folder_id: str,
        user_id: str,
        level: PermissionLevel,
    ) -> PermissionGrant:
        with unit_of_work(self.db):
            self._managed_target(identity, folder_id, TargetType.FOLDER, "share")
            grant = self.grants.get(user_id, TargetType.FOLDER, folder_id)
            if grant is None:
                raise GrantNotFoundError(user_id, folder_id)

            grant.level = level.value
            grant.inherited_from = None
            grant.granted_by = identity.user_id

            updated = 0
            for row in self.grants.list_inherited_from(user_id, folder_id):
                row.level = level.value
                updated += 1
            self.db.flush()
            created = self._fill_descendants(self.paths.subtree(folder_id), user_id, level, identity.user_id)
            audit_service.log(
                self.db, identity.user_id, "change_grant", "folder", folder_id,
                {"user_id": user_id, "level": level.value, "updated": updated, "propagated": created},
            )

        logger.info("Changed grant on folder %s for %s to %s", folder_id, user_id, level.value)
        return grant

    def revoke(self, identity: IdentityContext, folder_id: str, user_id: str) -> int:
        """Remove the grant and every row propagated from it. Returns rows removed."""
        with unit_of_work(self.db):
            self._managed_target(identity, folder_id, TargetType.FOLDER, "share")
            grant = self.grants.get(user_id, TargetType.FOLDER, folder_id)
            if grant is None:
                raise GrantNotFoundError(user_id, folder_id)

            self.grants.delete(grant)
            removed = 1 + self.grants.delete_inherited_from(user_id, folder_id)
            audit_service.log(
                self.db, identity.user_id, "revoke", "folder", folder_id,
                {"user_id": user_id, "removed": removed},
            )

        logger.info("Revoked grant on folder %s for %s (%d rows)", folder_id, user_id, removed)
        return removed

    # -- File grants -------------------------------------------------------

    def grant_file(
        self,
        identity: IdentityContext,
        file_id: str,
        user_id: str,
        level: PermissionLevel,
    ) -> PermissionGrant:
        with unit_of_work(self.db):
            target = self._managed_target(identity, file_id, TargetType.FILE, "share")
            self._validate_grantee(target, user_id)
            if self.grants.get(user_id, TargetType.FILE, file_id) is not None:
                raise GrantConflictError(user_id, file_id)
            grant = self.grants.create(user_id, TargetType.FILE, file_id, level, identity.user_id)
            audit_service.log(
                self.db, identity.user_id, "grant", "file", file_id,
                {"user_id": user_id, "level": level.value},
            )
        return grant

    def change_file(
        self,
        identity: IdentityContext,
        file_id: str,
        user_id: str,
        level: PermissionLevel,
    ) -> PermissionGrant:
        with unit_of_work(self.db):
            self._managed_target(identity, file_id, TargetType.FILE, "share")
            grant = self.grants.get(user_id, TargetType.FILE, file_id)
            if grant is None:
                raise GrantNotFoundError(user_id, file_id)
            grant.level = level.value
            grant.inherited_from = None
            grant.granted_by = identity.user_id
            self.db.flush()
            audit_service.log(
                self.db, identity.user_id, "change_grant", "file", file_id,
                {"user_id": user_id, "level": level.value},
            )
        return grant

    def revoke_file(self, identity: IdentityContext, file_id: str, user_id: str) -> int:
        with unit_of_work(self.db):
            self._managed_target(identity, file_id, TargetType.FILE, "share")
            grant = self.grants.get(user_id, TargetType.FILE, file_id)
            if grant is None:
                raise GrantNotFoundError(user_id, file_id)
            self.grants.delete(grant)
            audit_service.log(
                self.db, identity.user_id, "revoke", "file", file_id, {"user_id": user_id}
            )
        return 1

    # -- Listing -----------------------------------------------------------

    def list_grants(
        self,
        identity: IdentityContext,
        target_id: str,
        target_type: TargetType = TargetType.FOLDER,
    ) -> List[PermissionGrant]:
        self._managed_target(identity, target_id, target_type, None)
        return self.grants.list_for_target(target_type, target_id)

    def list_shared(
        self,
        identity: IdentityContext,
        folder_page: int = 1,
        file_page: int = 1,
        per_page: Optional[int] = None,
    ) -> SharedListing:
        """Folders and files carrying a grant for the caller.

        A shared folder is left out when one of its direct subfolders is
        shared too, so the listing points at the deepest shared folders.
        Levels are the caller's effective levels on the listed page.
        """
        folder_request = page_request(folder_page, per_page, page_field="folder_page")
        file_request = page_request(file_page, per_page, page_field="file_page")
        if identity.is_restricted_admin:
            return SharedListing(slice_page([], folder_request), slice_page([], file_request))

        folder_ids = [g.target_id for g in self.grants.list_for_user(identity.user_id, TargetType.FOLDER)]
        file_ids = [g.target_id for g in self.grants.list_for_user(identity.user_id, TargetType.FILE)]

        shared = self.folders.get_many(folder_ids)
        with_shared_child = {f.parent_id for f in shared if f.parent_id is not None}
        folders = sorted(
            (f for f in shared if f.id not in with_shared_child), key=lambda f: (f.name, f.id)
        )
        files = sorted(self.files.get_many(file_ids), key=lambda f: (f.name, f.id))

        listing = SharedListing(slice_page(folders, folder_request), slice_page(files, file_request))
        nodes = [(f, TargetType.FOLDER) for f in listing.folders.items]
        nodes += [(f, TargetType.FILE) for f in listing.files.items]
        for node, kind in nodes:
            level = self.permissions.effective_level(identity, self.permissions.resolve(node.id, kind))
            if level is not None:
                listing.levels[node.id] = level
        return listing

    # -- Internals ---------------------------------------------------------

    def _managed_target(
        self,
        identity: IdentityContext,
        target_id: str,
        target_type: TargetType,
        root_action: Optional[str],
    ) -> ResolvedTarget:
        """Resolve a target whose grants the caller may manage.

        Only an owner (of the node or an ancestor) or an unrestricted admin
        manages grants. Others who can see the node get PermissionDenied.
        """
        target = self.permissions.require(
            identity, target_id, target_type, PermissionLevel.READ, protect_root_for=root_action
        )
        if not (target.owned_by(identity.user_id) or identity.is_unrestricted_admin):
            raise PermissionDeniedError("Only the owner can manage permissions", target_id=target_id)
        return target

    def _validate_grantee(self, target: ResolvedTarget, user_id: str) -> None:
        self.users.get_by_id(user_id)
        if target.owned_by(user_id):
            raise ValidationError("Cannot grant permission to the owner", field="user_id")

    def _fill_descendants(
        self,
        index: SubtreeIndex,
        user_id: str,
        level: PermissionLevel,
        granted_by: str,
    ) -> int:
        """Create inherited grants below the subtree root where none exist.

        Descendants the grantee owns, or that already carry a grant for the
        grantee, are left untouched.
        """
        source_id = index.root_id
        descendant_folders = [f for f in index.walk() if f.id != source_id]
        files = index.file_list
        existing = self.grants.grants_for_user(
            user_id,
            folder_ids=[f.id for f in descendant_folders],
            file_ids=[f.id for f in files],
        )

        created = 0
        for folder in descendant_folders:
            if folder.owner_id == user_id or (TargetType.FOLDER.value, folder.id) in existing:
                continue
            self.grants.create(user_id, TargetType.FOLDER, folder.id, level, granted_by, inherited_from=source_id)
            created += 1
        for stored in files:
            if stored.owner_id == user_id or (TargetType.FILE.value, stored.id) in existing:
                continue
            self.grants.create(user_id, TargetType.FILE, stored.id, level, granted_by, inherited_from=source_id)
            created += 1
        return created
