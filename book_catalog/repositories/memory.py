"""
In-process book repository used for local development and tests
"""
import asyncio
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from ..models import (
    BookRecord, FilterCriteria, Pagination, UpdateBookRequest, NotFoundError
)
from .base import BookRepository


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryBookRepository(BookRepository):
    """Dictionary-backed repository; newest books are listed first."""

    def __init__(self):
        self._books: Dict[str, BookRecord] = {}
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "memory"

    def _newest_first(self) -> List[BookRecord]:
        return list(reversed(list(self._books.values())))

    async def list(self, pagination: Pagination) -> Tuple[List[BookRecord], int]:
        async with self._lock:
            books = self._newest_first()
        return list(pagination.slice(books)), len(books)

    async def get_by_id(self, book_id: str) -> BookRecord:
        async with self._lock:
            book = self._books.get(book_id)
        if book is None:
            raise NotFoundError(book_id=book_id)
        return book

    async def create(self, title: str, author: str, year: int) -> BookRecord:
        book = BookRecord(
            id=str(uuid.uuid4()),
            title=title,
            author=author,
            year=year,
            created_at=_utcnow(),
        )
        async with self._lock:
            self._books[book.id] = book
        return book

    async def update(self, book_id: str, patch: UpdateBookRequest) -> BookRecord:
        async with self._lock:
            existing = self._books.get(book_id)
            if existing is None:
                raise NotFoundError(book_id=book_id)

            # updated_at never moves backwards, even if the clock does
            floor = existing.updated_at or existing.created_at
            updated = patch.apply(existing).model_copy(
                update={'updated_at': max(_utcnow(), floor)}
            )
            self._books[book_id] = updated
        return updated

    async def delete(self, book_id: str) -> None:
        async with self._lock:
            if self._books.pop(book_id, None) is None:
                raise NotFoundError(book_id=book_id)

    async def search(self, criteria: FilterCriteria) -> List[BookRecord]:
        async with self._lock:
            books = self._newest_first()
        return [b for b in books if criteria.matches(b)]
