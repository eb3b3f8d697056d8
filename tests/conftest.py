# tests/conftest.py
"""
pytest 설정 및 공통 fixture
"""
import os

import pytest
from starlette.testclient import TestClient

# 환경 변수 설정
os.environ['CATALOG_ENV'] = 'test'
os.environ['CATALOG_LOG_LEVEL'] = 'ERROR'  # 테스트 중 로그 최소화

from book_catalog.api import create_app
from book_catalog.cache import CacheManager, LocalCache
from book_catalog.config import Settings, get_settings
from book_catalog.repositories import InMemoryBookRepository
from book_catalog.services import CatalogService


class FakeTimer:
    """TTL 테스트용 수동 시계"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class CountingRepository(InMemoryBookRepository):
    """저장소 호출 횟수를 세는 메모리 저장소"""

    def __init__(self):
        super().__init__()
        self.calls = {'list': 0, 'get': 0, 'search': 0}

    async def list(self, pagination):
        self.calls['list'] += 1
        return await super().list(pagination)

    async def get_by_id(self, book_id):
        self.calls['get'] += 1
        return await super().get_by_id(book_id)

    async def search(self, criteria):
        self.calls['search'] += 1
        return await super().search(criteria)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """설정 캐시 리셋"""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """테스트 설정 (Redis/DB 없음)"""
    return Settings(
        CATALOG_ENV='test',
        CATALOG_REDIS_URL='',
        CATALOG_DATABASE_URL='',
        CATALOG_CACHE_ITEM_TTL=600,
        CATALOG_CACHE_COLLECTION_TTL=300,
        CATALOG_REQUEST_TIMEOUT=5.0,
    )


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def local_cache(timer):
    return LocalCache(max_size=100, default_ttl=600, timer=timer)


@pytest.fixture
def cache_manager(local_cache):
    return CacheManager(local_cache, timeout=1.0)


@pytest.fixture
def repository():
    return CountingRepository()


@pytest.fixture
def service(repository, cache_manager, settings):
    return CatalogService(repository, cache_manager, settings)


@pytest.fixture
def app(settings, repository, cache_manager):
    return create_app(settings, repository=repository, cache=cache_manager)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
