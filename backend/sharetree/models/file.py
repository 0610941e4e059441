"""File model: a leaf of the tree holding bytes in the object store."""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.sql import func
from ..database import Base


class File(Base):
    """A stored file.

    The bytes live at ``<folder storage address>/<storage_key>``. Renaming
    changes only ``name``; moving changes ``folder_id`` and one object-store key.
    """

    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_folder_id", "folder_id"),
        Index("ix_files_owner_id", "owner_id"),
    )

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    storage_key = Column(String(64), nullable=False, unique=True)
    folder_id = Column(String(50), ForeignKey("folders.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    size_bytes = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(255), nullable=False, default="application/octet-stream")
    needs_repair = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
