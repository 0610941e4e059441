"""Repair task model for storage effects that failed after a commit."""

from sqlalchemy import Column, String, Text, Integer, DateTime
from sqlalchemy.sql import func
from ..database import Base


class RepairTask(Base):
    """
    A storage effect the object store rejected after the relational commit.

    Status transitions: queued -> running -> completed | failed
    Tasks are retried until ``retry_count`` reaches REPAIR_MAX_RETRIES.
    """

    __tablename__ = "repair_tasks"

    id = Column(String(50), primary_key=True)

    # Allowed values: make_directory, move, delete, delete_directory
    operation = Column(String(30), nullable=False)

    # Node the effect belongs to (may no longer exist after a delete)
    target_type = Column(String(10), nullable=False)
    target_id = Column(String(50), nullable=False)

    source_address = Column(Text, nullable=False)
    destination_address = Column(Text, nullable=True)

    # Allowed values: queued, running, completed, failed
    status = Column(String(20), nullable=False, default="queued")
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
