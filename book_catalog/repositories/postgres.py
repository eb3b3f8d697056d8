"""
PostgreSQL book repository using asyncpg
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import asyncpg
from asyncpg import Pool, Record

from ..models import (
    BookRecord, FilterCriteria, Pagination, UpdateBookRequest,
    NotFoundError, RepositoryError
)
from .base import BookRepository

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS books (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        author TEXT NOT NULL,
        year INTEGER NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NULL
    );
    CREATE INDEX IF NOT EXISTS books_created_at_idx ON books (created_at DESC);
"""

BOOK_COLUMNS = "id, title, author, year, created_at, updated_at"


def _contains_pattern(value: Optional[str]) -> Optional[str]:
    """ILIKE pattern matching ``value`` literally as a substring."""
    if value is None:
        return None
    escaped = value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


class PostgresBookRepository(BookRepository):
    """Repository backed by a PostgreSQL ``books`` table."""

    def __init__(
        self,
        database_url: str,
        min_size: int = 5,
        max_size: int = 25,
        command_timeout: float = 30.0,
        pool: Optional[Pool] = None
    ):
        """Initialize the repository.

        Args:
            database_url: PostgreSQL DSN
            min_size: Minimum pool size
            max_size: Maximum pool size
            command_timeout: Per-statement timeout in seconds
            pool: Pre-built pool (tests inject a fake one)
        """
        self.dsn = database_url
        if "+asyncpg" in self.dsn:
            self.dsn = self.dsn.replace("+asyncpg", "")

        self.pool_config = {
            "min_size": min_size,
            "max_size": max_size,
            "max_inactive_connection_lifetime": 300,
            "command_timeout": command_timeout,
        }
        self.pool: Optional[Pool] = pool
        self._pool_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "postgres"

    async def initialize(self):
        """Create the pool and the ``books`` table if absent."""
        async with self._acquire('initialize') as connection:
            await connection.execute(SCHEMA_SQL)
        logger.info("PostgreSQL book repository ready")

    async def _get_pool(self) -> Pool:
        if self.pool is None:
            async with self._pool_lock:
                if self.pool is None:
                    logger.info(f"Creating database pool with size {self.pool_config['max_size']}")
                    self.pool = await asyncpg.create_pool(
                        self.dsn,
                        server_settings={'application_name': 'book-catalog'},
                        **self.pool_config
                    )
        return self.pool

    @asynccontextmanager
    async def _acquire(self, operation: str):
        """Acquire a connection, translating driver failures into RepositoryError."""
        try:
            pool = await self._get_pool()
            async with pool.acquire() as connection:
                yield connection
        except (NotFoundError, RepositoryError):
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            raise RepositoryError(
                f"failed to {operation} books: {e}",
                operation=operation
            ) from e

    @staticmethod
    def _to_book(row: Record) -> BookRecord:
        return BookRecord(
            id=row['id'],
            title=row['title'],
            author=row['author'],
            year=row['year'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    async def list(self, pagination: Pagination) -> Tuple[List[BookRecord], int]:
        async with self._acquire('list') as connection:
            total = await connection.fetchval("SELECT COUNT(*) FROM books")
            if not total:
                return [], 0
            # past the last page; also keeps huge offsets out of the int8 parameter
            if pagination.offset >= total:
                return [], int(total)

            rows = await connection.fetch(
                f"""
                SELECT {BOOK_COLUMNS}
                FROM books
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2
                """,
                pagination.limit,
                pagination.offset,
            )
        return [self._to_book(row) for row in rows], int(total)

    async def get_by_id(self, book_id: str) -> BookRecord:
        async with self._acquire('get') as connection:
            row = await connection.fetchrow(
                f"SELECT {BOOK_COLUMNS} FROM books WHERE id = $1",
                book_id,
            )
        if row is None:
            raise NotFoundError(book_id=book_id)
        return self._to_book(row)

    async def create(self, title: str, author: str, year: int) -> BookRecord:
        async with self._acquire('create') as connection:
            row = await connection.fetchrow(
                f"""
                INSERT INTO books (id, title, author, year, created_at)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {BOOK_COLUMNS}
                """,
                str(uuid.uuid4()),
                title,
                author,
                year,
                datetime.now(timezone.utc),
            )
        return self._to_book(row)

    async def update(self, book_id: str, patch: UpdateBookRequest) -> BookRecord:
        # COALESCE keeps unset fields; GREATEST keeps updated_at monotonic
        async with self._acquire('update') as connection:
            row = await connection.fetchrow(
                f"""
                UPDATE books
                SET title = COALESCE($1, title),
                    author = COALESCE($2, author),
                    year = COALESCE($3, year),
                    updated_at = GREATEST($4, created_at, COALESCE(updated_at, created_at))
                WHERE id = $5
                RETURNING {BOOK_COLUMNS}
                """,
                patch.title,
                patch.author,
                patch.year,
                datetime.now(timezone.utc),
                book_id,
            )
        if row is None:
            raise NotFoundError(book_id=book_id)
        return self._to_book(row)

    async def delete(self, book_id: str) -> None:
        async with self._acquire('delete') as connection:
            status = await connection.execute("DELETE FROM books WHERE id = $1", book_id)
        # asyncpg returns the command tag, e.g. "DELETE 1"
        if status.split()[-1] == "0":
            raise NotFoundError(book_id=book_id)

    async def search(self, criteria: FilterCriteria) -> List[BookRecord]:
        async with self._acquire('search') as connection:
            rows = await connection.fetch(
                f"""
                SELECT {BOOK_COLUMNS}
                FROM books
                WHERE ($1::text IS NULL OR title ILIKE $1 ESCAPE '\\')
                    AND ($2::text IS NULL OR author ILIKE $2 ESCAPE '\\')
                    AND ($3::int IS NULL OR year = $3)
                ORDER BY created_at DESC
                """,
                _contains_pattern(criteria.title),
                _contains_pattern(criteria.author),
                criteria.year,
            )
        return [self._to_book(row) for row in rows]

    async def ping(self) -> bool:
        try:
            async with self._acquire('ping') as connection:
                return await connection.fetchval("SELECT 1") == 1
        except RepositoryError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")
