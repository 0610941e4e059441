"""Folder model: one node of a user's tree."""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.sql import func
from ..database import Base


class Folder(Base):
    """A folder in the hierarchy.

    ``parent_id`` is NULL only for a user's root folder. ``storage_key`` is
    assigned once and is the only handle into the object store; the display
    path and depth are derived from the live ancestor chain and never stored.
    ``size_bytes`` aggregates every file in the subtree and is maintained
    incrementally by the mutation service.
    """

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_owner_id", "owner_id"),
        Index("ix_folders_parent_id", "parent_id"),
        Index("ix_folders_parent_name", "parent_id", "name"),
        # One root per user.
        Index(
            "uq_folders_owner_root",
            "owner_id",
            unique=True,
            sqlite_where=text("parent_id IS NULL"),
            postgresql_where=text("parent_id IS NULL"),
        ),
    )

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    parent_id = Column(String(50), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True)
    owner_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    storage_key = Column(String(64), nullable=False, unique=True)
    size_bytes = Column(BigInteger, nullable=False, default=0)

    # Set when a storage effect failed after commit; cleared by the repair worker.
    needs_repair = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_root(self) -> bool:
        return self.parent_id is None
