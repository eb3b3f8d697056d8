"""
Pagination descriptor

Parses page/limit query parameters, validates them and performs the
offset and page-count arithmetic shared by the repositories and the
catalog service.
"""
from typing import Mapping, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict

from .errors import ValidationError

T = TypeVar('T')

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 15000


def _positive_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    raw = str(raw).strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class PaginationInfo(BaseModel):
    """Pagination metadata returned alongside a page of books"""
    current_page: int
    per_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool


class Pagination(BaseModel):
    """Immutable page/limit pair.

    Construction never fails; out-of-range values are only rejected by
    ``validate()`` so that callers decide when to report them.
    """
    model_config = ConfigDict(frozen=True)

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_request_params(cls, params: Mapping[str, str]) -> "Pagination":
        """Build from raw query parameters, falling back to defaults."""
        return cls(
            page=_positive_int(params.get('page'), DEFAULT_PAGE),
            limit=_positive_int(params.get('limit'), DEFAULT_LIMIT),
        )

    def validate(self) -> None:
        if self.page < 1:
            raise ValidationError("Page must be greater than 0", field='page', value=self.page)
        if self.limit < 1 or self.limit > MAX_LIMIT:
            raise ValidationError(
                f"Limit must be between 1 and {MAX_LIMIT}",
                field='limit',
                value=self.limit
            )

    @property
    def offset(self) -> int:
        if self.page > 1:
            return (self.page - 1) * self.limit
        return 0

    @staticmethod
    def total_pages(total_items: int, limit: int) -> int:
        if limit == 0:
            return 0
        if total_items == 0:
            return 1
        return -(-total_items // limit)

    def info(self, total_items: int) -> PaginationInfo:
        total_pages = self.total_pages(total_items, self.limit)
        return PaginationInfo(
            current_page=self.page,
            per_page=self.limit,
            total_pages=total_pages,
            total_items=total_items,
            has_next=self.page < total_pages,
            has_prev=self.page > 1,
        )

    def slice(self, items: Sequence[T]) -> Sequence[T]:
        start = self.offset
        return items[start:start + self.limit]
