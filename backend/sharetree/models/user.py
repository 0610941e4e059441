"""User and AuditLog models.

Users are created by UserService together with their root folder.
AuditLog records all state-changing operations for accountability.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, ForeignKey
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """User account.

    Roles:
        user  - regular account, access decided by ownership and grants
        admin - administrative account; only ``is_superadmin`` admins get
                unrestricted access, other admins get none implicitly
    """

    __tablename__ = "users"

    user_id = Column(String(50), primary_key=True)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    role = Column(String(20), nullable=False, default="user")
    is_superadmin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    """Immutable record of state-changing operations.

    Written by the service layer inside the operation's transaction, never
    modified or deleted.
    Fields:
        action        - create, rename, move, delete, upload, grant,
                        change_grant, revoke
        resource_type - folder, file, grant, user
        resource_id   - ID of the affected resource
        details       - JSON string with additional context
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
