"""
Book models and data structures using Pydantic v2
"""
from typing import List, Mapping, Optional
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict

from .errors import ValidationError
from .pagination import PaginationInfo

TITLE_MAX_LENGTH = 200
AUTHOR_MAX_LENGTH = 200
MIN_YEAR = 0
MAX_YEAR = 2100


class BookRecord(BaseModel):
    """A persisted book"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str
    author: str
    year: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class CreateBookRequest(BaseModel):
    """Body of ``POST /api/books``"""
    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore')

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    author: str = Field(..., min_length=1, max_length=AUTHOR_MAX_LENGTH)
    year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR, strict=True)


class UpdateBookRequest(BaseModel):
    """Optional-field patch; ``None`` means "leave unchanged"."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore')

    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    author: Optional[str] = Field(default=None, min_length=1, max_length=AUTHOR_MAX_LENGTH)
    year: Optional[int] = Field(default=None, ge=MIN_YEAR, le=MAX_YEAR, strict=True)

    def changes(self, book: BookRecord) -> dict:
        """Fields whose value differs from ``book``."""
        changed = {}
        for name, value in self.model_dump(exclude_none=True).items():
            if getattr(book, name) != value:
                changed[name] = value
        return changed

    def apply(self, book: BookRecord) -> BookRecord:
        return book.model_copy(update=self.model_dump(exclude_none=True))


class FilterCriteria(BaseModel):
    """Search filters from the list query string"""
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    author: Optional[str] = None
    year: Optional[int] = None

    @classmethod
    def from_request_params(cls, params: Mapping[str, str]) -> "FilterCriteria":
        title = (params.get('title') or '').strip() or None
        author = (params.get('author') or '').strip() or None

        year = None
        raw_year = (params.get('year') or '').strip()
        if raw_year:
            try:
                year = int(raw_year)
            except ValueError:
                raise ValidationError("year must be an integer", field='year', value=raw_year)

        return cls(title=title, author=author, year=year)

    @property
    def is_filtered(self) -> bool:
        return bool(self.title or self.author or self.year is not None)

    def matches(self, book: BookRecord) -> bool:
        if self.title and self.title.lower() not in book.title.lower():
            return False
        if self.author and self.author.lower() not in book.author.lower():
            return False
        if self.year is not None and book.year != self.year:
            return False
        return True


class PaginatedBooks(BaseModel):
    """A page of books plus its metadata; cached as a whole"""
    data: List[BookRecord] = Field(default_factory=list)
    meta: PaginationInfo
