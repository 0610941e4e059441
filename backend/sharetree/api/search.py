"""Search API: name search over the caller's own and shared nodes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import IdentityContext, require_identity
from ..database import get_db
from ..schemas.file import FileResponse
from ..schemas.folder import FolderResponse
from ..schemas.listing import FilePage, FolderPage, PageInfo, SearchResponse
from ..services.mutation_service import MutationService
from ..storage import ObjectStore, get_object_store

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResponse)
def search(
    name: str = Query(..., min_length=1, max_length=255),
    folder_page: int = Query(1, ge=1),
    file_page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    identity: IdentityContext = Depends(require_identity),
):
    """Folders and files whose name contains ``name``, own and shared."""
    results = MutationService(db, store).search(identity, name, folder_page, file_page, per_page)

    def folders(page) -> FolderPage:
        return FolderPage(items=[FolderResponse.model_validate(f) for f in page.items], pagination=PageInfo.of(page))

    def files(page) -> FilePage:
        return FilePage(items=[FileResponse.model_validate(f) for f in page.items], pagination=PageInfo.of(page))

    return SearchResponse(
        own_folders=folders(results.own_folders),
        own_files=files(results.own_files),
        shared_folders=folders(results.shared_folders),
        shared_files=files(results.shared_files),
    )
