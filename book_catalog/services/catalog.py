"""
Catalog service

Mediates every read and write between the HTTP layer and the
repository/cache pair:

* single-item and unfiltered collection reads go through the cache
  (read-through, JSON payloads with a TTL);
* filtered reads bypass the cache in both directions;
* mutations invalidate ``item:<id>`` and bump the collection version,
  which makes every cached collection page unaddressable at once.

Consistency between cache and store is best-effort. Cache failures are
absorbed by ``CacheManager``; only repository failures fail a request.
"""
import logging
from typing import Any, Awaitable, Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from ..cache import CacheKey, CacheManager
from ..config import Settings
from ..models import (
    BookRecord,
    CreateBookRequest,
    UpdateBookRequest,
    FilterCriteria,
    Pagination,
    PaginatedBooks,
    ServiceError,
    ValidationError
)
from ..monitoring.metrics import MetricsCollector
from ..repositories import BookRepository
from ..utils import AuditLogger, PerformanceLogger

T = TypeVar('T', bound=BaseModel)


class CachedRead(Generic[T]):
    """Result of a read plus where it came from"""

    def __init__(self, value: T, cache_key: Optional[str] = None, hit: bool = False):
        self.value = value
        self.cache_key = cache_key
        self.hit = hit


SAMPLE_BOOKS = [
    ("1984", "George Orwell", 1949),
    ("Animal Farm", "George Orwell", 1945),
    ("Brave New World", "Aldous Huxley", 1932),
    ("To Kill a Mockingbird", "Harper Lee", 1960),
    ("The Great Gatsby", "F. Scott Fitzgerald", 1925),
]


class CatalogService:
    """Cache-coherent book catalog"""

    def __init__(
        self,
        repository: BookRepository,
        cache: CacheManager,
        settings: Settings,
        logger: Optional[logging.Logger] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.repository = repository
        self.cache = cache
        self.item_ttl = settings.cache_item_ttl
        self.collection_ttl = settings.cache_collection_ttl
        self.logger = logger or logging.getLogger(__name__)
        self.audit_logger = audit_logger or AuditLogger()

    async def _call_repository(self, operation: str, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        """Run a repository call with timing, metrics and failure logging."""
        perf = PerformanceLogger(f"repository_{operation}", self.logger).add_context(
            repository=self.repository.name
        )
        try:
            async with perf:
                result = await func(*args)
        except ServiceError as e:
            MetricsCollector.record_repository_call(operation, success=False, duration=perf.duration)
            if e.status_code >= 500:
                MetricsCollector.record_error(type(e).__name__, self.repository.name)
                self.logger.error(f"Repository {operation} failed: {e.message}")
            raise

        MetricsCollector.record_repository_call(operation, success=True, duration=perf.duration)
        return result

    async def _read_through(
        self,
        key: str,
        model_type: Type[T],
        loader: Callable[[], Awaitable[T]],
        ttl: int,
        guard_version: bool = False
    ) -> CachedRead[T]:
        cached = await self.cache.get_model(key, model_type)
        if cached is not None:
            return CachedRead(value=cached, cache_key=key, hit=True)

        # A write during the load bumps the version; the loaded value
        # may then predate it.
        version = await self.cache.get_collection_version() if guard_version else None

        value = await loader()

        if guard_version:
            if version is None or await self.cache.get_collection_version() != version:
                self.logger.debug(f"Catalog changed while loading {key}, not caching")
                return CachedRead(value=value, cache_key=key, hit=False)

        await self.cache.set_model(key, value, ttl)
        return CachedRead(value=value, cache_key=key, hit=False)

    async def discard(self, read: CachedRead) -> None:
        """Drop a cache hit that could not be delivered so the next request re-populates it."""
        if read.hit and read.cache_key:
            self.logger.warning(f"Discarding undeliverable cache entry {read.cache_key}")
            await self.cache.delete(read.cache_key)

    # Reads

    async def get_book(self, book_id: str) -> CachedRead[BookRecord]:
        return await self._read_through(
            CacheKey.for_item(book_id),
            BookRecord,
            lambda: self._call_repository('get', self.repository.get_by_id, book_id),
            self.item_ttl,
            guard_version=True
        )

    async def list_books(
        self,
        pagination: Pagination,
        criteria: Optional[FilterCriteria] = None
    ) -> CachedRead[PaginatedBooks]:
        pagination.validate()

        if criteria is not None and criteria.is_filtered:
            # Filter combinations are unbounded; never read or write the cache
            books = await self._call_repository('search', self.repository.search, criteria)
            return CachedRead(value=self._paginate(books, pagination))

        version = await self.cache.get_collection_version()
        if version is None:
            return CachedRead(value=await self._load_page(pagination))

        return await self._read_through(
            CacheKey.for_collection(version, pagination.page, pagination.limit),
            PaginatedBooks,
            lambda: self._load_page(pagination),
            self.collection_ttl
        )

    async def _load_page(self, pagination: Pagination) -> PaginatedBooks:
        books, total = await self._call_repository('list', self.repository.list, pagination)
        return PaginatedBooks(data=books, meta=pagination.info(total))

    @staticmethod
    def _paginate(books: List[BookRecord], pagination: Pagination) -> PaginatedBooks:
        return PaginatedBooks(
            data=list(pagination.slice(books)),
            meta=pagination.info(len(books))
        )

    # Writes

    async def create_book(self, request: CreateBookRequest) -> BookRecord:
        book = await self._call_repository(
            'create', self.repository.create, request.title, request.author, request.year
        )
        await self._invalidate()

        self.audit_logger.log_mutation('created', book.id, title=book.title)
        self.logger.info(f"Book created: {book.id} ({book.title})")
        return book

    async def update_book(self, book_id: str, patch: UpdateBookRequest) -> BookRecord:
        existing = await self._call_repository('get', self.repository.get_by_id, book_id)
        changes = patch.changes(existing)
        if not changes:
            raise ValidationError("no changes provided")

        book = await self._call_repository(
            'update', self.repository.update, book_id, UpdateBookRequest(**changes)
        )
        await self._invalidate(book_id)

        self.audit_logger.log_mutation('updated', book_id, title=book.title, metadata={'fields': sorted(changes)})
        self.logger.info(f"Book updated: {book_id}")
        return book

    async def delete_book(self, book_id: str) -> None:
        await self._call_repository('delete', self.repository.delete, book_id)
        await self._invalidate(book_id)

        self.audit_logger.log_mutation('deleted', book_id)
        self.logger.info(f"Book deleted: {book_id}")

    async def _invalidate(self, book_id: Optional[str] = None) -> None:
        """Best-effort; cache faults are logged by the cache manager.

        The version is bumped before the item key is dropped so that an
        item read racing this write sees the new version and skips its store.
        """
        if await self.cache.bump_collection_version() is None and self.cache.enabled:
            self.logger.warning("Collection cache version not bumped; cached pages may be stale until TTL expiry")
        if book_id is not None:
            await self.cache.invalidate_item(CacheKey.for_item(book_id))

    async def seed_sample_books(self) -> int:
        """Populate an empty catalog with a few well-known books."""
        _, total = await self._call_repository('list', self.repository.list, Pagination(page=1, limit=1))
        if total:
            self.logger.info(f"Catalog already has {total} books, skipping seed")
            return 0

        for title, author, year in SAMPLE_BOOKS:
            await self.create_book(CreateBookRequest(title=title, author=author, year=year))

        self.logger.info(f"Added {len(SAMPLE_BOOKS)} sample books")
        return len(SAMPLE_BOOKS)
