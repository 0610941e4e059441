"""
Polling worker for the storage repair queue.

Checks the repair_tasks table every REPAIR_POLL_INTERVAL seconds, claims
queued tasks one at a time and re-applies the storage effect they record.
Failed attempts are re-queued by RepairService until REPAIR_MAX_RETRIES
is reached. Once per DRIFT_CHECK_INTERVAL the size counters of every root
folder are verified and corrected.

Usage:
    python worker.py
"""

import logging
import os
import time
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from sharetree import models  # noqa: F401
from sharetree.core.config import settings
from sharetree.core.logging_config import setup_logging
from sharetree.database import Base, SessionLocal, engine, unit_of_work
from sharetree.exceptions import ShareTreeException
from sharetree.models.folder import Folder
from sharetree.services.repair_service import RepairService
from sharetree.services.size_service import SizeService
from sharetree.storage import get_object_store

# Seconds between size-counter drift checks (24 hours)
DRIFT_CHECK_INTERVAL = int(os.getenv("DRIFT_CHECK_INTERVAL", str(24 * 60 * 60)))

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger("worker")


def process_pending() -> dict:
    """Drain the repair queue once. Returns the per-status summary."""
    db = SessionLocal()
    try:
        summary = RepairService(db, get_object_store()).process_pending()
        if any(summary.values()):
            logger.info(
                f"Repair pass: {summary['completed']} completed, "
                f"{summary['requeued']} requeued, {summary['failed']} failed"
            )
        return summary
    finally:
        db.close()


def verify_counters() -> int:
    """Recompute size counters below every root folder. Returns folders corrected."""
    db = SessionLocal()
    try:
        corrected = 0
        root_ids = [row.id for row in db.query(Folder.id).filter(Folder.parent_id.is_(None)).all()]
        for root_id in root_ids:
            with unit_of_work(db):
                corrected += len(SizeService(db).verify_and_repair_counters(root_id))
        if corrected:
            logger.warning(f"Corrected {corrected} drifted size counter(s)")
        return corrected
    finally:
        db.close()


def main() -> None:
    """Poll the repair queue and periodically verify size counters."""
    logger.info(f"Repair worker started, polling every {settings.repair_poll_interval}s")
    Base.metadata.create_all(bind=engine)

    last_drift_check = datetime.now(timezone.utc)

    while True:
        try:
            now = datetime.now(timezone.utc)
            if (now - last_drift_check).total_seconds() >= DRIFT_CHECK_INTERVAL:
                verify_counters()
                last_drift_check = now

            summary = process_pending()
            if not summary["completed"]:
                time.sleep(settings.repair_poll_interval)

        except KeyboardInterrupt:
            logger.info("Worker shutting down")
            break
        except (SQLAlchemyError, ShareTreeException) as e:
            logger.error(f"Worker error: {e}")
            time.sleep(settings.repair_poll_interval)


if __name__ == "__main__":
    main()
