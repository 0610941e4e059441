"""Favorite marks: a user's starred folders and files."""

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func
from ..database import Base


class FavoriteMark(Base):
    """Pure many-to-many marker between a user and a folder or file."""

    __tablename__ = "favorite_marks"

    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    target_type = Column(String(10), primary_key=True)
    target_id = Column(String(50), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
