"""Page arithmetic shared by the listing and search operations."""

from dataclasses import dataclass
from typing import Generic, List, Optional, Sequence, TypeVar

from ..core.config import settings
from ..exceptions import ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def page_request(
    page: int,
    per_page: Optional[int] = None,
    page_field: str = "page",
    size_field: str = "per_page",
) -> PageRequest:
    """Validate a 1-based page number and size. Size defaults to LIST_PAGE_SIZE."""
    if page < 1:
        raise ValidationError("Page must be at least 1", field=page_field)
    per_page = per_page or settings.list_page_size
    if per_page < 1:
        raise ValidationError("Page size must be at least 1", field=size_field)
    return PageRequest(page, per_page)


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return max(1, -(-self.total // self.per_page))

    @property
    def has_more(self) -> bool:
        return self.page * self.per_page < self.total


def slice_page(items: Sequence[T], request: PageRequest) -> Page[T]:
    """Cut one page out of an already ordered, fully loaded sequence."""
    start = request.offset
    return Page(list(items[start:start + request.per_page]), request.page, request.per_page, len(items))
