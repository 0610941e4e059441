"""PermissionGrant model and the closed enums it stores."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.sql import func
from ..database import Base


class PermissionLevel(str, Enum):
    """Access level of a grant. WRITE implies READ."""

    READ = "read"
    WRITE = "write"

    def satisfies(self, required: "PermissionLevel") -> bool:
        return self == PermissionLevel.WRITE or required == PermissionLevel.READ


class TargetType(str, Enum):
    FOLDER = "folder"
    FILE = "file"


class PermissionGrant(Base):
    """A permission held by a non-owner on one folder or file.

    ``inherited_from`` is NULL for a grant an owner attached directly
    (explicit). Rows materialized by propagation record the folder whose
    grant produced them, so change/revoke can touch exactly those rows and
    leave explicit customizations lower in the tree alone.
    """

    __tablename__ = "permission_grants"
    __table_args__ = (
        UniqueConstraint("user_id", "target_type", "target_id", name="uq_permission_grants_user_target"),
        Index("ix_permission_grants_target", "target_type", "target_id"),
        Index("ix_permission_grants_inherited_from", "inherited_from"),
    )

    id = Column(String(50), primary_key=True)
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    target_id = Column(String(50), nullable=False)
    target_type = Column(String(10), nullable=False)
    level = Column(String(10), nullable=False)
    inherited_from = Column(String(50), nullable=True)
    granted_by = Column(String(50), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def permission_level(self) -> PermissionLevel:
        return PermissionLevel(self.level)

    @property
    def is_explicit(self) -> bool:
        return self.inherited_from is None
