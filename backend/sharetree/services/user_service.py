"""User provisioning: every user is created together with their root folder."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import unit_of_work
from ..exceptions import InconsistentStateError, ValidationError
from ..models.folder import Folder
from ..models.permission import TargetType
from ..models.user import User
from ..repositories.folder_repository import FolderRepository
from ..repositories.user_repository import UserRepository
from ..storage import ObjectStore
from . import audit_service
from .path_service import address_of, new_storage_key
from .repair_service import MAKE_DIRECTORY, RepairService, StorageEffect
from .size_service import SizeService

logger = logging.getLogger(__name__)

VALID_ROLES = ("user", "admin")


def root_folder_name(display_name: str) -> str:
    return f"{display_name} Main Folder"


@dataclass
class UserCreated:
    user: User
    root: Folder
    warnings: List[InconsistentStateError] = field(default_factory=list)


class UserService:
    """Creates users and reports their storage usage."""

    def __init__(self, db: Session, store: ObjectStore):
        self.db = db
        self.users = UserRepository(db)
        self.folders = FolderRepository(db)
        self.sizes = SizeService(db)
        self.repairs = RepairService(db, store)

    def create_user(
        self,
        display_name: str,
        email: Optional[str] = None,
        role: str = "user",
        is_superadmin: bool = False,
        user_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> UserCreated:
        """Insert the user and their root folder in one transaction."""
        display_name = (display_name or "").strip()
        if not display_name:
            raise ValidationError("Display name cannot be empty", field="display_name")
        if role not in VALID_ROLES:
            raise ValidationError(f"Role must be one of {VALID_ROLES}", field="role")
        if is_superadmin and role != "admin":
            raise ValidationError("Only admins can be superadmins", field="is_superadmin")

        user_id = user_id or str(uuid.uuid4())
        with unit_of_work(self.db):
            if self.users.get_by_id_optional(user_id) is not None:
                raise ValidationError(f"User already exists: {user_id}", field="user_id")
            if email and self.users.get_by_email(email) is not None:
                raise ValidationError(f"Email already in use: {email}", field="email")

            user = self.users.create(user_id, display_name, email, role, is_superadmin)
            root = self.folders.create(root_folder_name(display_name), user.user_id, None, new_storage_key())
            effects = [StorageEffect(MAKE_DIRECTORY, TargetType.FOLDER, root.id, address_of([root]))]
            audit_service.log(
                self.db, created_by, "create", "user", user.user_id,
                {"role": role, "root_folder_id": root.id},
            )

        logger.info("User created", extra={"user_id": user_id, "root_folder_id": root.id})
        warnings = self.repairs.apply_effects(effects)
        return UserCreated(user=user, root=root, warnings=warnings)

    def get_user(self, user_id: str) -> User:
        return self.users.get_by_id(user_id)

    def get_root(self, user_id: str) -> Folder:
        self.users.get_by_id(user_id)
        root = self.folders.get_root(user_id)
        if root is None:
            raise ValidationError(f"User {user_id} has no root folder", field="user_id")
        return root

    def storage_usage(self, user_id: str) -> Tuple[int, int, int]:
        """``(used_bytes, limit_bytes, folder_count)`` for a user."""
        self.users.get_by_id(user_id)
        return (
            self.sizes.storage_usage(user_id),
            settings.storage_limit_bytes,
            self.sizes.count_user_folders(user_id),
        )
