"""Post-commit storage effects and the repair queue for the ones that fail.

Relational changes commit first; the matching object-store effects are
applied afterwards in order. An effect the store rejects becomes a
RepairTask, the affected node is flagged ``needs_repair`` and the caller
gets an InconsistentStateError warning instead of an exception.

Tasks move through queued -> running -> completed/failed and are retried
up to REPAIR_MAX_RETRIES times by the polling worker.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import unit_of_work
from ..exceptions import InconsistentStateError, StorageIOError
from ..models.permission import TargetType
from ..models.repair_task import RepairTask
from ..repositories.file_repository import FileRepository
from ..repositories.folder_repository import FolderRepository
from ..storage import ObjectStore

logger = logging.getLogger(__name__)

MAKE_DIRECTORY = "make_directory"
MOVE = "move"
DELETE = "delete"
DELETE_DIRECTORY = "delete_directory"


@dataclass(frozen=True)
class StorageEffect:
    """One object-store call owed by a committed operation."""

    operation: str
    target_type: TargetType
    target_id: str
    source_address: str
    destination_address: Optional[str] = None


def apply_effect(store: ObjectStore, effect: StorageEffect) -> None:
    """Perform one effect. Re-running an already applied effect is harmless."""
    if effect.operation == MAKE_DIRECTORY:
        store.make_directory(effect.source_address)
    elif effect.operation == DELETE:
        store.delete(effect.source_address)
    elif effect.operation == DELETE_DIRECTORY:
        store.delete_directory(effect.source_address)
    elif effect.operation == MOVE:
        if not store.exists(effect.source_address) and store.exists(effect.destination_address):
            return
        store.move(effect.source_address, effect.destination_address)
    else:
        raise ValueError(f"Unknown storage operation: {effect.operation}")


class RepairService:
    """
    Applies storage effects and manages the repair queue.

    Public methods:
        apply_effects   -- run effects after a commit, queue failures
        claim_next      -- take the oldest queued task
        run             -- execute one claimed task
        process_pending -- drain the queue (used by the worker)
        list_tasks      -- inspect the queue
    """

    def __init__(self, db: Session, store: ObjectStore):
        self.db = db
        self.store = store
        self.folders = FolderRepository(db)
        self.files = FileRepository(db)

    def apply_effects(self, effects: Iterable[StorageEffect]) -> List[InconsistentStateError]:
        warnings: List[InconsistentStateError] = []
        for effect in effects:
            try:
                apply_effect(self.store, effect)
            except StorageIOError as exc:
                warnings.append(self._record_failure(effect, exc))
        return warnings

    def _record_failure(self, effect: StorageEffect, exc: StorageIOError) -> InconsistentStateError:
        with unit_of_work(self.db):
            task = RepairTask(
                id=str(uuid.uuid4()),
                operation=effect.operation,
                target_type=effect.target_type.value,
                target_id=effect.target_id,
                source_address=effect.source_address,
                destination_address=effect.destination_address,
                status="queued",
                error_message=exc.message,
            )
            self.db.add(task)
            self._flag(effect.target_type.value, effect.target_id, True)

        logger.warning(
            "Storage effect failed, repair queued",
            extra={
                "operation": effect.operation,
                "target_id": effect.target_id,
                "repair_task_id": task.id,
                "error": exc.message,
            },
        )
        return InconsistentStateError(effect.target_type.value, effect.target_id, task.id, exc.message)

    def _flag(self, target_type: str, target_id: str, value: bool) -> None:
        """Set needs_repair on the node if it still exists."""
        if target_type == TargetType.FILE.value:
            self.files.set_needs_repair(target_id, value)
        else:
            self.folders.set_needs_repair(target_id, value)

    def claim_next(self, exclude_ids: Iterable[str] = ()) -> Optional[RepairTask]:
        """Claim the oldest queued task, or None if the queue is empty."""
        query = self.db.query(RepairTask).filter(RepairTask.status == "queued")
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            query = query.filter(RepairTask.id.notin_(exclude_ids))
        task = (
            query
            .order_by(RepairTask.created_at.asc(), RepairTask.id.asc())
            .first()
        )
        if not task:
            return None

        task.status = "running"
        task.started_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(task)
        logger.info(f"Claimed repair task {task.id} ({task.operation} {task.target_id})")
        return task

    def run(self, task: RepairTask) -> RepairTask:
        """Execute a claimed task and record the result."""
        effect = StorageEffect(
            operation=task.operation,
            target_type=TargetType(task.target_type),
            target_id=task.target_id,
            source_address=task.source_address,
            destination_address=task.destination_address,
        )
        try:
            apply_effect(self.store, effect)
        except StorageIOError as exc:
            return self.fail(task.id, exc.message)
        return self.complete(task.id)

    def complete(self, task_id: str) -> RepairTask:
        task = self._get(task_id)
        task.status = "completed"
        task.completed_at = datetime.now(timezone.utc)
        task.error_message = None
        self.db.flush()
        if not self._has_open_tasks(task.target_id, exclude_id=task.id):
            self._flag(task.target_type, task.target_id, False)
        self.db.commit()
        self.db.refresh(task)
        logger.info(f"Repair task {task_id} completed")
        return task

    def fail(self, task_id: str, error_message: str) -> RepairTask:
        """Record a failed attempt; re-queue until retries are exhausted."""
        task = self._get(task_id)
        task.retry_count += 1

        if task.retry_count < settings.repair_max_retries:
            task.status = "queued"
            task.error_message = f"Retry after: {error_message}"
            logger.info(f"Repair task {task_id} failed, re-queuing (retry {task.retry_count})")
        else:
            task.status = "failed"
            task.error_message = error_message
            task.completed_at = datetime.now(timezone.utc)
            logger.warning(f"Repair task {task_id} failed permanently: {error_message}")

        self.db.commit()
        self.db.refresh(task)
        return task

    def process_pending(self, limit: Optional[int] = None) -> Dict[str, int]:
        """Run queued tasks until the queue is empty or ``limit`` is reached.

        Each task is attempted at most once per call.
        """
        summary = {"completed": 0, "requeued": 0, "failed": 0}
        seen: List[str] = []
        while limit is None or sum(summary.values()) < limit:
            task = self.claim_next(exclude_ids=seen)
            if task is None:
                break
            seen.append(task.id)
            result = self.run(task)
            summary[result.status if result.status != "queued" else "requeued"] += 1
        return summary

    def list_tasks(self, status: Optional[str] = None, limit: int = 100) -> List[RepairTask]:
        query = self.db.query(RepairTask)
        if status:
            query = query.filter(RepairTask.status == status)
        return query.order_by(RepairTask.created_at.desc(), RepairTask.id).limit(limit).all()

    def _get(self, task_id: str) -> RepairTask:
        task = self.db.get(RepairTask, task_id)
        if not task:
            raise ValueError(f"Repair task not found: {task_id}")
        return task

    def _has_open_tasks(self, target_id: str, exclude_id: str) -> bool:
        return (
            self.db.query(RepairTask.id)
            .filter(
                RepairTask.target_id == target_id,
                RepairTask.id != exclude_id,
                RepairTask.status.in_(["queued", "running"]),
            )
            .first()
            is not None
        )
