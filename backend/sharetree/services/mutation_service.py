"""Structural mutations of the folder tree.

Every public operation runs in one transaction: all validation happens
first, then the relational changes are staged and committed together.
Object-store effects owed by the change are applied after the commit; a
failing effect turns into a repair task and a warning on the outcome.
Uploads are the exception: their bytes are written before the commit and
removed again if the commit does not happen.
"""

import logging
import mimetypes
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.auth import IdentityContext
from ..core.config import settings
from ..database import unit_of_work
from ..exceptions import (
    CycleDetectedError,
    DepthLimitExceededError,
    FileRecordNotFoundError,
    FolderNotFoundError,
    InconsistentStateError,
    NameConflictError,
    StorageIOError,
    ValidationError,
)
from ..models.file import File
from ..models.folder import Folder
from ..models.permission import PermissionLevel, TargetType
from ..repositories.file_repository import FileRepository
from ..repositories.folder_repository import FolderRepository
from ..repositories.permission_repository import PermissionRepository
from ..storage import ObjectStore
from . import audit_service
from .favorite_service import FavoriteService
from .pagination import Page, PageRequest, page_request
from .path_service import PathService, address_of, display_path_of, new_storage_key
from .permission_service import PermissionService, ResolvedTarget
from .repair_service import (
    DELETE,
    DELETE_DIRECTORY,
    MAKE_DIRECTORY,
    MOVE,
    RepairService,
    StorageEffect,
)
from .size_service import SizeService, SubtreeStats

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


@dataclass
class MutationOutcome:
    """Result of a committed mutation.

    ``warnings`` is non-empty when a storage effect failed after the commit
    (degraded success); each warning names the repair task created for it.
    """

    folders: List[Folder] = field(default_factory=list)
    files: List[File] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)
    warnings: List[InconsistentStateError] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


@dataclass
class FolderListing:
    folder: Folder
    display_path: str
    level: PermissionLevel
    subfolders: List[Folder]
    files: List[File]
    levels: Dict[str, PermissionLevel]
    total_folders: int
    total_files: int
    page: int
    page_size: int

    @property
    def total(self) -> int:
        return self.total_folders + self.total_files

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


@dataclass
class SearchResults:
    own_folders: Page[Folder]
    own_files: Page[File]
    shared_folders: Page[Folder]
    shared_files: Page[File]


def validate_name(name: Optional[str], field_name: str = "name") -> str:
    """Normalize a display name and reject unusable ones."""
    if name is None:
        raise ValidationError("Name is required", field=field_name)
    cleaned = unicodedata.normalize("NFC", name).strip()
    if not cleaned:
        raise ValidationError("Name cannot be empty", field=field_name)
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name cannot exceed {MAX_NAME_LENGTH} characters", field=field_name)
    if cleaned in (".", ".."):
        raise ValidationError("Name cannot be '.' or '..'", field=field_name)
    if "/" in cleaned or "\\" in cleaned:
        raise ValidationError("Name cannot contain slashes", field=field_name)
    if any(unicodedata.category(ch) == "Cc" for ch in cleaned):
        raise ValidationError("Name cannot contain control characters", field=field_name)
    return cleaned


class MutationService:
    """Create, rename, move and delete folders and files.

    Public methods:
        create_folder / rename_folder / move_folder / delete_folders
        create_file / upload_file / rename_file / move_file / delete_files
        get_display_path / list_children / calculate_subtree_size / search
    """

    def __init__(self, db: Session, store: ObjectStore):
        self.db = db
        self.store = store
        self.paths = PathService(db)
        self.permissions = PermissionService(db)
        self.sizes = SizeService(db)
        self.folders = FolderRepository(db)
        self.files = FileRepository(db)
        self.grants = PermissionRepository(db)
        self.favorites = FavoriteService(db)
        self.repairs = RepairService(db, store)

    # -- Folders -----------------------------------------------------------

    def create_folder(self, identity: IdentityContext, parent_id: Optional[str], name: str) -> MutationOutcome:
        """Create a folder under ``parent_id`` (the caller's root when None)."""
        name = validate_name(name)
        with unit_of_work(self.db):
            parent_id = parent_id or self._root_id(identity)
            parent = self.permissions.require(identity, parent_id, TargetType.FOLDER, PermissionLevel.WRITE)

            depth = len(parent.chain)
            if depth >= settings.max_subfolder_depth:
                raise DepthLimitExceededError(depth, settings.max_subfolder_depth)
            if self.folders.sibling_name_exists(parent_id, name):
                raise NameConflictError(name, parent_id)

            folder = self.folders.create(name, identity.user_id, parent_id, new_storage_key())
            effects = [
                StorageEffect(MAKE_DIRECTORY, TargetType.FOLDER, folder.id, address_of([folder, *parent.chain]))
            ]
            audit_service.log(
                self.db, identity.user_id, "create", "folder", folder.id,
                {"name": name, "parent_id": parent_id},
            )

        logger.info("Folder created", extra={"folder_id": folder.id, "parent_id": parent_id})
        return self._finish(MutationOutcome(folders=[folder]), effects)

    def rename_folder(self, identity: IdentityContext, folder_id: str, name: str) -> MutationOutcome:
        """Change a folder's display name. Storage is untouched."""
        name = validate_name(name)
        with unit_of_work(self.db):
            target = self.permissions.require(
                identity, folder_id, TargetType.FOLDER, PermissionLevel.WRITE, protect_root_for="rename"
            )
            folder = target.folder
            if folder.name != name:
                if self.folders.sibling_name_exists(folder.parent_id, name, exclude_id=folder.id):
                    raise NameConflictError(name, folder.parent_id)
                old_name = folder.name
                folder.name = name
                self.db.flush()
                audit_service.log(
                    self.db, identity.user_id, "rename", "folder", folder.id,
                    {"from": old_name, "to": name},
                )
        return MutationOutcome(folders=[folder])

    def move_folder(self, identity: IdentityContext, folder_id: str, new_parent_id: str) -> MutationOutcome:
        """Re-parent a folder and its whole subtree.

        The moved folder's row is locked first and every check runs after
        the lock, so a concurrent move cannot slip a cycle in between.
        """
        with unit_of_work(self.db):
            if self.folders.lock_by_id(folder_id) is None:
                raise FolderNotFoundError(folder_id)
            target = self.permissions.require(
                identity, folder_id, TargetType.FOLDER, PermissionLevel.WRITE, protect_root_for="move"
            )
            destination = self.permissions.require(
                identity, new_parent_id, TargetType.FOLDER, PermissionLevel.WRITE
            )
            folder = target.folder

            if any(f.id == folder_id for f in destination.chain):
                raise CycleDetectedError(folder_id, new_parent_id)
            if folder.parent_id == new_parent_id:
                return MutationOutcome(folders=[folder])

            subtree = self.paths.subtree(folder_id, with_files=True)
            deepest = len(destination.chain) + subtree.height
            if deepest >= settings.max_subfolder_depth:
                raise DepthLimitExceededError(deepest, settings.max_subfolder_depth)
            if self.folders.sibling_name_exists(new_parent_id, folder.name):
                raise NameConflictError(folder.name, new_parent_id)

            old_address = address_of(target.chain)
            former_ancestors = target.chain[1:]
            size = folder.size_bytes or 0

            self.folders.add_size([f.id for f in former_ancestors], -size)
            old_parent_id = folder.parent_id
            folder.parent_id = new_parent_id
            self.db.flush()
            self.folders.add_size([f.id for f in destination.chain], size)

            stale_sources = {f.id for f in former_ancestors} - {f.id for f in destination.chain}
            dropped = self.grants.delete_inherited_outside(
                subtree.folder_ids, [f.id for f in subtree.file_list], stale_sources
            )

            new_address = address_of([folder, *destination.chain])
            effects = [StorageEffect(MOVE, TargetType.FOLDER, folder.id, old_address, new_address)]
            audit_service.log(
                self.db, identity.user_id, "move", "folder", folder.id,
                {"from": old_parent_id, "to": new_parent_id, "dropped_grants": dropped},
            )

        logger.info("Folder moved", extra={"folder_id": folder_id, "parent_id": new_parent_id})
        return self._finish(MutationOutcome(folders=[folder]), effects)

    def delete_folders(self, identity: IdentityContext, folder_ids: List[str]) -> MutationOutcome:
        """Delete folders with everything below them, all or nothing.

        Every id is validated before anything is removed.
        """
        ids = list(dict.fromkeys(folder_ids or []))
        if not ids:
            raise ValidationError("No folders given", field="folder_ids")

        outcome = MutationOutcome()
        effects: List[StorageEffect] = []
        with unit_of_work(self.db):
            missing = [fid for fid in ids if self.folders.get_by_id_optional(fid) is None]
            if missing:
                raise FolderNotFoundError(", ".join(missing))

            targets: List[ResolvedTarget] = []
            for fid in ids:
                self.folders.lock_by_id(fid)
                targets.append(
                    self.permissions.require(
                        identity, fid, TargetType.FOLDER, PermissionLevel.WRITE, protect_root_for="delete"
                    )
                )

            for target in targets:
                if self.folders.get_by_id_optional(target.target_id) is None:
                    # Already removed as part of an earlier subtree in this batch.
                    continue
                address = address_of(target.chain)
                removed = self._delete_subtree(target)
                outcome.deleted_ids.extend(removed)
                effects.append(StorageEffect(DELETE_DIRECTORY, TargetType.FOLDER, target.target_id, address))
                audit_service.log(
                    self.db, identity.user_id, "delete", "folder", target.target_id,
                    {"removed_nodes": len(removed)},
                )

        logger.info("Folders deleted", extra={"folder_ids": ids, "removed": len(outcome.deleted_ids)})
        return self._finish(outcome, effects)

    def _delete_subtree(self, target: ResolvedTarget) -> List[str]:
        subtree = self.paths.subtree(target.target_id, with_files=True)
        folder_ids = subtree.folder_ids
        file_ids = [f.id for f in subtree.file_list]

        self.folders.add_size([f.id for f in target.chain[1:]], -(target.folder.size_bytes or 0))
        self.grants.delete_for_targets(TargetType.FOLDER, folder_ids)
        self.grants.delete_for_targets(TargetType.FILE, file_ids)
        self.favorites.remove_for_targets(TargetType.FOLDER, folder_ids)
        self.favorites.remove_for_targets(TargetType.FILE, file_ids)
        self.files.delete_in_folders(folder_ids)
        self.folders.delete_many(folder_ids)
        return folder_ids + file_ids

    # -- Files -------------------------------------------------------------

    def create_file(
        self,
        identity: IdentityContext,
        folder_id: Optional[str],
        name: str,
        content: str = "",
        mime_type: str = "text/plain",
    ) -> MutationOutcome:
        """Create a text file from a string."""
        return self.upload_file(identity, folder_id, name, content.encode("utf-8"), mime_type)

    def upload_file(
        self,
        identity: IdentityContext,
        folder_id: Optional[str],
        name: str,
        data: bytes,
        mime_type: Optional[str] = None,
    ) -> MutationOutcome:
        """Store bytes as a new file in ``folder_id`` (the caller's root when None)."""
        name = validate_name(name)
        written: Optional[str] = None
        try:
            with unit_of_work(self.db):
                folder_id = folder_id or self._root_id(identity)
                parent = self.permissions.require(identity, folder_id, TargetType.FOLDER, PermissionLevel.WRITE)
                if self.files.name_exists(folder_id, name):
                    raise NameConflictError(name, folder_id)
                self.sizes.check_quota(identity.user_id, len(data))

                key = new_storage_key()
                address = f"{address_of(parent.chain)}/{key}"
                self.store.put(address, data)
                written = address

                stored = self.files.create(
                    name=name,
                    folder_id=folder_id,
                    owner_id=identity.user_id,
                    storage_key=key,
                    size_bytes=len(data),
                    mime_type=mime_type or mimetypes.guess_type(name)[0] or "application/octet-stream",
                )
                self.folders.add_size([f.id for f in parent.chain], len(data))
                audit_service.log(
                    self.db, identity.user_id, "upload", "file", stored.id,
                    {"name": name, "folder_id": folder_id, "size": len(data)},
                )
        except Exception:
            if written is not None:
                self._discard(written)
            raise

        logger.info("File stored", extra={"file_id": stored.id, "folder_id": folder_id, "size": len(data)})
        return MutationOutcome(files=[stored])

    def _discard(self, address: str) -> None:
        """Remove bytes written for a transaction that did not commit."""
        try:
            self.store.delete(address)
        except StorageIOError as exc:
            logger.error("Could not remove orphaned upload", extra={"key": address, "error": exc.message})

    def rename_file(self, identity: IdentityContext, file_id: str, name: str) -> MutationOutcome:
        name = validate_name(name)
        with unit_of_work(self.db):
            target = self.permissions.require(identity, file_id, TargetType.FILE, PermissionLevel.WRITE)
            stored = target.file
            if stored.name != name:
                if self.files.name_exists(stored.folder_id, name, exclude_id=stored.id):
                    raise NameConflictError(name, stored.folder_id)
                old_name = stored.name
                stored.name = name
                self.db.flush()
                audit_service.log(
                    self.db, identity.user_id, "rename", "file", stored.id,
                    {"from": old_name, "to": name},
                )
        return MutationOutcome(files=[stored])

    def move_file(self, identity: IdentityContext, file_id: str, new_folder_id: str) -> MutationOutcome:
        with unit_of_work(self.db):
            if self.files.lock_by_id(file_id) is None:
                raise FileRecordNotFoundError(file_id)
            target = self.permissions.require(identity, file_id, TargetType.FILE, PermissionLevel.WRITE)
            destination = self.permissions.require(
                identity, new_folder_id, TargetType.FOLDER, PermissionLevel.WRITE
            )
            stored = target.file
            if stored.folder_id == new_folder_id:
                return MutationOutcome(files=[stored])
            if self.files.name_exists(new_folder_id, stored.name):
                raise NameConflictError(stored.name, new_folder_id)

            old_address = f"{address_of(target.chain)}/{stored.storage_key}"
            size = stored.size_bytes or 0
            self.folders.add_size([f.id for f in target.chain], -size)
            old_folder_id = stored.folder_id
            stored.folder_id = new_folder_id
            self.db.flush()
            self.folders.add_size([f.id for f in destination.chain], size)

            stale_sources = {f.id for f in target.chain} - {f.id for f in destination.chain}
            self.grants.delete_inherited_outside([], [stored.id], stale_sources)

            new_address = f"{address_of(destination.chain)}/{stored.storage_key}"
            effects = [StorageEffect(MOVE, TargetType.FILE, stored.id, old_address, new_address)]
            audit_service.log(
                self.db, identity.user_id, "move", "file", stored.id,
                {"from": old_folder_id, "to": new_folder_id},
            )
        return self._finish(MutationOutcome(files=[stored]), effects)

    def delete_files(self, identity: IdentityContext, file_ids: List[str]) -> MutationOutcome:
        """Delete files, all or nothing."""
        ids = list(dict.fromkeys(file_ids or []))
        if not ids:
            raise ValidationError("No files given", field="file_ids")

        outcome = MutationOutcome()
        effects: List[StorageEffect] = []
        with unit_of_work(self.db):
            missing = [fid for fid in ids if self.files.get_by_id_optional(fid) is None]
            if missing:
                raise FileRecordNotFoundError(", ".join(missing))

            targets = [
                self.permissions.require(identity, fid, TargetType.FILE, PermissionLevel.WRITE) for fid in ids
            ]
            for target in targets:
                stored = target.file
                effects.append(
                    StorageEffect(
                        DELETE, TargetType.FILE, stored.id, f"{address_of(target.chain)}/{stored.storage_key}"
                    )
                )
                self.folders.add_size([f.id for f in target.chain], -(stored.size_bytes or 0))
                audit_service.log(self.db, identity.user_id, "delete", "file", stored.id, {"name": stored.name})

            self.grants.delete_for_targets(TargetType.FILE, ids)
            self.favorites.remove_for_targets(TargetType.FILE, ids)
            self.files.delete_many(ids)
            outcome.deleted_ids.extend(ids)

        return self._finish(outcome, effects)

    # -- Queries -----------------------------------------------------------

    def get_display_path(
        self,
        identity: IdentityContext,
        target_id: str,
        target_type: TargetType = TargetType.FOLDER,
    ) -> str:
        target = self.permissions.require(identity, target_id, target_type, PermissionLevel.READ)
        path = display_path_of(target.chain)
        if target.file is not None:
            return f"{path}/{target.file.name}"
        return path

    def list_children(
        self,
        identity: IdentityContext,
        folder_id: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> FolderListing:
        """Sub-folders then files of a folder, paginated across both."""
        request = page_request(page, page_size, size_field="page_size")
        page_size = request.per_page

        folder_id = folder_id or self._root_id(identity)
        target = self.permissions.require(identity, folder_id, TargetType.FOLDER, PermissionLevel.READ)

        offset = request.offset
        total_folders = self.folders.count_children(folder_id)
        total_files = self.files.count_in_folder(folder_id)

        subfolders: List[Folder] = []
        if offset < total_folders:
            subfolders = self.folders.list_children(folder_id, offset=offset, limit=page_size)
        remaining = page_size - len(subfolders)
        files: List[File] = []
        if remaining > 0:
            files = self.files.list_in_folder(
                folder_id, offset=max(0, offset - total_folders), limit=remaining
            )

        return FolderListing(
            folder=target.folder,
            display_path=display_path_of(target.chain),
            level=self.permissions.effective_level(identity, target),
            subfolders=subfolders,
            files=files,
            levels=self.permissions.child_levels(identity, target, subfolders, files),
            total_folders=total_folders,
            total_files=total_files,
            page=page,
            page_size=page_size,
        )

    def calculate_subtree_size(self, identity: IdentityContext, folder_id: str) -> SubtreeStats:
        self.permissions.require(identity, folder_id, TargetType.FOLDER, PermissionLevel.READ)
        return self.sizes.subtree_stats(folder_id)

    def search(
        self,
        identity: IdentityContext,
        name: Optional[str],
        folder_page: int = 1,
        file_page: int = 1,
        per_page: Optional[int] = None,
    ) -> SearchResults:
        """Case-insensitive name search over the caller's own and shared nodes.

        Own results are nodes the caller owns; shared results are nodes
        carrying a grant for the caller. Folder and file results page
        independently.
        """
        term = (name or "").strip()
        if not term:
            raise ValidationError("Search term is required", field="name")
        if len(term) > MAX_NAME_LENGTH:
            raise ValidationError(f"Search term cannot exceed {MAX_NAME_LENGTH} characters", field="name")
        folder_request = page_request(folder_page, per_page, page_field="folder_page")
        file_request = page_request(file_page, per_page, page_field="file_page")

        user_id = identity.user_id
        results = SearchResults(
            own_folders=self._folder_page(folder_request, owner_id=user_id, name_contains=term),
            own_files=self._file_page(file_request, owner_id=user_id, name_contains=term),
            shared_folders=Page([], folder_request.page, folder_request.per_page, 0),
            shared_files=Page([], file_request.page, file_request.per_page, 0),
        )
        # Grants held by a restricted admin are never honoured.
        if not identity.is_restricted_admin:
            results.shared_folders = self._folder_page(folder_request, shared_with=user_id, name_contains=term)
            results.shared_files = self._file_page(file_request, shared_with=user_id, name_contains=term)
        return results

    # -- Internals ---------------------------------------------------------

    def _root_id(self, identity: IdentityContext) -> str:
        root = self.folders.get_root(identity.user_id)
        if root is None:
            raise FolderNotFoundError(f"root of {identity.user_id}")
        return root.id

    def _folder_page(self, request: PageRequest, **criteria) -> Page[Folder]:
        items = self.folders.find(offset=request.offset, limit=request.per_page, **criteria)
        return Page(items, request.page, request.per_page, self.folders.count_matching(**criteria))

    def _file_page(self, request: PageRequest, **criteria) -> Page[File]:
        items = self.files.find(offset=request.offset, limit=request.per_page, **criteria)
        return Page(items, request.page, request.per_page, self.files.count_matching(**criteria))

    def _finish(self, outcome: MutationOutcome, effects: List[StorageEffect]) -> MutationOutcome:
        outcome.warnings.extend(self.repairs.apply_effects(effects))
        return outcome
