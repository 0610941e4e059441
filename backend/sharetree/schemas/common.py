"""Schemas shared by every mutation endpoint."""

from typing import Any, Dict, List

from pydantic import BaseModel


class StorageWarning(BaseModel):
    """A storage effect that failed after the change was committed."""
    error: str
    message: str
    details: Dict[str, Any] = {}


def warnings_of(errors) -> List[StorageWarning]:
    return [StorageWarning(**w.to_dict()) for w in errors]


class DeleteResponse(BaseModel):
    deleted_ids: List[str]
    warnings: List[StorageWarning] = []
