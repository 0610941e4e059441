"""Repair queue API. Admin only."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import IdentityContext, require_admin
from ..database import get_db, unit_of_work
from ..schemas.user import RepairRunResponse, RepairTaskResponse
from ..services.repair_service import RepairService
from ..services.size_service import SizeService
from ..storage import ObjectStore, get_object_store

router = APIRouter(prefix="/api/repairs", tags=["repairs"])


@router.get("", response_model=List[RepairTaskResponse])
def list_repairs(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    admin: IdentityContext = Depends(require_admin),
):
    return RepairService(db, store).list_tasks(status=status)


@router.post("/run", response_model=RepairRunResponse)
def run_repairs(
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    admin: IdentityContext = Depends(require_admin),
):
    """Process queued repair tasks now instead of waiting for the worker."""
    return RepairService(db, store).process_pending(limit=limit)


@router.post("/counters/{folder_id}")
def repair_counters(
    folder_id: str,
    db: Session = Depends(get_db),
    admin: IdentityContext = Depends(require_admin),
):
    """Recompute the size counters of a subtree and fix drift."""
    with unit_of_work(db):
        corrected = SizeService(db).verify_and_repair_counters(folder_id)
    return {"folder_id": folder_id, "corrected": corrected}
