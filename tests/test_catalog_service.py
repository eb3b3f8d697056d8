# tests/test_catalog_service.py
"""
카탈로그 서비스 테스트 - 캐시 일관성
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from book_catalog.cache import CacheBackend, CacheKey, CacheManager
from book_catalog.models import (
    BookRecord,
    CreateBookRequest,
    UpdateBookRequest,
    FilterCriteria,
    Pagination,
    NotFoundError,
    RepositoryError,
    ValidationError,
    CacheError
)
from book_catalog.repositories import InMemoryBookRepository
from book_catalog.services import CatalogService, CachedRead, SAMPLE_BOOKS


class PausingRepository(InMemoryBookRepository):
    """get_by_id가 값을 읽은 뒤 gate가 열릴 때까지 대기"""

    def __init__(self):
        super().__init__()
        self.loaded = asyncio.Event()
        self.gate = asyncio.Event()

    async def get_by_id(self, book_id):
        book = await super().get_by_id(book_id)
        self.loaded.set()
        await self.gate.wait()
        return book


async def add_books(service: CatalogService, count: int):
    for i in range(count):
        await service.create_book(
            CreateBookRequest(title=f"Book {i}", author=f"Author {i}", year=1900 + i)
        )


class TestReads:
    """읽기 경로 테스트"""

    @pytest.mark.asyncio
    async def test_item_hit_skips_repository(self, service, repository):
        book = await service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )

        first = await service.get_book(book.id)
        second = await service.get_book(book.id)

        assert first.hit is False
        assert second.hit is True
        assert second.value == book
        assert repository.calls['get'] == 1

    @pytest.mark.asyncio
    async def test_missing_book_not_cached(self, service, local_cache):
        with pytest.raises(NotFoundError):
            await service.get_book('nope')

        assert await local_cache.get(CacheKey.for_item('nope')) is None

    @pytest.mark.asyncio
    async def test_collection_hit_skips_repository(self, service, repository):
        await add_books(service, 3)
        pagination = Pagination(page=1, limit=10)

        await service.list_books(pagination)
        read = await service.list_books(pagination)

        assert read.hit is True
        assert read.cache_key == CacheKey.for_collection(3, 1, 10)
        assert repository.calls['list'] == 1

    @pytest.mark.asyncio
    async def test_pagination_metadata(self, service):
        await add_books(service, 15)

        read = await service.list_books(Pagination(page=2, limit=10))

        assert len(read.value.data) == 5
        meta = read.value.meta
        assert meta.total_pages == 2
        assert meta.total_items == 15
        assert meta.has_next is False
        assert meta.has_prev is True

    @pytest.mark.asyncio
    async def test_empty_catalog(self, service):
        read = await service.list_books(Pagination())

        assert read.value.data == []
        assert read.value.meta.total_pages == 1
        assert read.value.meta.total_items == 0

    @pytest.mark.asyncio
    async def test_filtered_read_bypasses_cache(self, service, repository, local_cache):
        """필터 조회는 캐시를 읽지도 쓰지도 않음"""
        await add_books(service, 3)
        keys_before = set(local_cache.cache.keys())
        criteria = FilterCriteria(author='author 1')

        first = await service.list_books(Pagination(), criteria)
        second = await service.list_books(Pagination(), criteria)

        assert repository.calls['search'] == 2
        assert first.hit is False and second.hit is False
        assert [b.author for b in second.value.data] == ['Author 1']
        assert set(local_cache.cache.keys()) == keys_before

    @pytest.mark.asyncio
    async def test_invalid_pagination_rejected(self, service, repository):
        with pytest.raises(ValidationError):
            await service.list_books(Pagination(page=1, limit=20000))
        assert repository.calls['list'] == 0

    @pytest.mark.asyncio
    async def test_item_ttl_expiry(self, service, repository, timer, settings):
        book = await service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )
        await service.get_book(book.id)

        timer.advance(settings.cache_item_ttl + 1)
        read = await service.get_book(book.id)

        assert read.hit is False
        assert repository.calls['get'] == 2


class TestInvalidation:
    """쓰기 후 무효화 테스트"""

    @pytest.mark.asyncio
    async def test_create_invalidates_collection(self, service):
        """생성 후 같은 페이지 조회는 새 전체 개수를 반영"""
        await add_books(service, 2)
        pagination = Pagination(page=1, limit=10)
        before = await service.list_books(pagination)
        assert before.value.meta.total_items == 2

        await service.create_book(CreateBookRequest(title="New", author="Writer", year=2020))
        after = await service.list_books(pagination)

        assert after.hit is False
        assert after.value.meta.total_items == 3
        assert after.cache_key != before.cache_key

    @pytest.mark.asyncio
    async def test_update_invalidates_item_and_collection(self, service):
        book = await service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )
        await service.get_book(book.id)
        await service.list_books(Pagination())

        updated = await service.update_book(book.id, UpdateBookRequest(year=1966))

        item = await service.get_book(book.id)
        page = await service.list_books(Pagination())
        assert item.hit is False
        assert item.value.year == 1966
        assert page.value.data[0].year == 1966
        assert updated.updated_at is not None
        assert updated.updated_at >= updated.created_at

    @pytest.mark.asyncio
    async def test_update_without_changes(self, service):
        book = await service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.update_book(book.id, UpdateBookRequest(title="Dune"))

        assert exc_info.value.message == "no changes provided"

    @pytest.mark.asyncio
    async def test_update_missing_book(self, service):
        with pytest.raises(NotFoundError):
            await service.update_book('nope', UpdateBookRequest(title="X"))

    @pytest.mark.asyncio
    async def test_delete_invalidates(self, service):
        book = await service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )
        await service.get_book(book.id)

        await service.delete_book(book.id)

        with pytest.raises(NotFoundError):
            await service.get_book(book.id)
        page = await service.list_books(Pagination())
        assert page.value.meta.total_items == 0

    @pytest.mark.asyncio
    async def test_failed_write_does_not_invalidate(self, service, repository, cache_manager):
        await add_books(service, 1)
        version = await cache_manager.get_collection_version()
        repository.create = AsyncMock(side_effect=RepositoryError("db down", operation='create'))

        with pytest.raises(RepositoryError):
            await service.create_book(CreateBookRequest(title="X", author="Y", year=2000))

        assert await cache_manager.get_collection_version() == version

    @pytest.mark.asyncio
    async def test_read_racing_delete_does_not_cache_deleted_book(self, cache_manager, settings):
        """삭제 전에 읽은 값이 삭제 후에 캐시에 다시 쓰이지 않음"""
        repository = PausingRepository()
        service = CatalogService(repository, cache_manager, settings)
        book = await service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )

        pending = asyncio.create_task(service.get_book(book.id))
        await repository.loaded.wait()
        await service.delete_book(book.id)
        repository.gate.set()
        stale = await pending

        assert stale.value.id == book.id
        assert await cache_manager.get_model(CacheKey.for_item(book.id), BookRecord) is None
        with pytest.raises(NotFoundError):
            await service.get_book(book.id)


class TestCacheFailures:
    """캐시 장애 허용 테스트"""

    @pytest.fixture
    def broken_service(self, repository, settings):
        backend = AsyncMock(spec=CacheBackend)
        for operation in ('get', 'set', 'delete', 'incr'):
            getattr(backend, operation).side_effect = CacheError("unreachable", operation=operation)
        return CatalogService(repository, CacheManager(backend, timeout=1.0), settings)

    @pytest.mark.asyncio
    async def test_requests_succeed_without_cache(self, broken_service, repository):
        book = await broken_service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )

        read = await broken_service.get_book(book.id)
        page = await broken_service.list_books(Pagination())

        assert read.value == book
        assert page.value.meta.total_items == 1
        assert repository.calls['get'] == 1
        assert repository.calls['list'] == 1

    @pytest.mark.asyncio
    async def test_disabled_cache_always_reads_repository(self, repository, settings):
        service = CatalogService(repository, CacheManager(None), settings)
        await add_books(service, 1)

        await service.list_books(Pagination())
        await service.list_books(Pagination())

        assert repository.calls['list'] == 2


class TestDiscard:
    """전달 실패한 캐시 항목 폐기"""

    @pytest.mark.asyncio
    async def test_discard_hit_deletes_key(self, service, local_cache):
        book = await service.create_book(
            CreateBookRequest(title="Dune", author="Frank Herbert", year=1965)
        )
        await service.get_book(book.id)
        hit = await service.get_book(book.id)

        await service.discard(hit)

        assert await local_cache.get(CacheKey.for_item(book.id)) is None

    @pytest.mark.asyncio
    async def test_discard_miss_is_noop(self, service, local_cache):
        book = BookRecord(
            id='b1', title='T', author='A', year=2000, created_at='2024-01-01T00:00:00Z'
        )
        await local_cache.set(CacheKey.for_item('b1'), book.model_dump_json(), 60)

        await service.discard(CachedRead(book, cache_key=CacheKey.for_item('b1'), hit=False))

        assert await local_cache.get(CacheKey.for_item('b1')) is not None


class TestSeed:
    """샘플 데이터 테스트"""

    @pytest.mark.asyncio
    async def test_seed_only_when_empty(self, service):
        assert await service.seed_sample_books() == len(SAMPLE_BOOKS)
        assert await service.seed_sample_books() == 0

        page = await service.list_books(Pagination())
        assert page.value.meta.total_items == len(SAMPLE_BOOKS)
