"""
도서 저장소 모듈
"""
import logging

from ..config import Settings
from .base import BookRepository
from .memory import InMemoryBookRepository
from .postgres import PostgresBookRepository

logger = logging.getLogger(__name__)


def create_repository(settings: Settings) -> BookRepository:
    """설정에 따라 저장소 생성 (DB URL이 없으면 메모리 저장소)"""
    if settings.database_url:
        return PostgresBookRepository(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout
        )

    logger.warning("CATALOG_DATABASE_URL not set, using in-memory repository")
    return InMemoryBookRepository()


__all__ = [
    'BookRepository',
    'InMemoryBookRepository',
    'PostgresBookRepository',
    'create_repository',
]
