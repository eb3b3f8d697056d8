"""
Book request handlers

Decode and validate input, call the catalog service under the request
deadline and map results to the response envelope.
"""
import asyncio
import logging
from typing import Any, Awaitable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError
from starlette.endpoints import HTTPEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..models import (
    CreateBookRequest,
    UpdateBookRequest,
    FilterCriteria,
    Pagination,
    RequestTimeoutError,
    ValidationError
)
from ..services import CatalogService, CachedRead
from . import responses

M = TypeVar('M', bound=BaseModel)


class BookHandler:
    """HTTP-facing adapter around ``CatalogService``"""

    def __init__(
        self,
        service: CatalogService,
        request_timeout: float,
        logger: Optional[logging.Logger] = None
    ):
        self.service = service
        self.request_timeout = request_timeout
        self.logger = logger or logging.getLogger(__name__)

    async def _bounded(self, operation: str, coro: Awaitable[Any]) -> Any:
        """Await ``coro`` under the request deadline; expiry cancels it."""
        try:
            return await asyncio.wait_for(coro, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(operation, self.request_timeout)

    async def _respond(self, read: CachedRead, message: Optional[str] = None) -> Response:
        try:
            return responses.success(read.value, message)
        except Exception:
            # no retry within this request; the next one re-populates the key
            await self.service.discard(read)
            raise

    @staticmethod
    async def _read_json(request: Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("invalid JSON format")
        if not isinstance(body, dict):
            raise ValidationError("invalid JSON format")
        return body

    def _parse(self, model_type: Type[M], body: Dict[str, Any]) -> M:
        try:
            return model_type.model_validate(body)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first['loc']) or None
            self.logger.warning(f"Validation failed for {model_type.__name__}: {e.error_count()} errors")
            raise ValidationError(
                f"{field}: {first['msg']}" if field else first['msg'],
                field=field
            )

    @staticmethod
    def _book_id(request: Request) -> str:
        book_id = request.path_params.get('book_id', '').strip()
        if not book_id:
            raise ValidationError("book ID cannot be empty")
        return book_id

    async def list_books(self, request: Request) -> Response:
        params = dict(request.query_params)
        pagination = Pagination.from_request_params(params)
        criteria = FilterCriteria.from_request_params(params)

        read = await self._bounded('list_books', self.service.list_books(pagination, criteria))
        return await self._respond(read)

    async def create_book(self, request: Request) -> Response:
        payload = self._parse(CreateBookRequest, await self._read_json(request))
        book = await self._bounded('create_book', self.service.create_book(payload))
        return responses.success(book, "Book created successfully")

    async def get_book(self, request: Request) -> Response:
        book_id = self._book_id(request)
        read = await self._bounded('get_book', self.service.get_book(book_id))
        return await self._respond(read)

    async def update_book(self, request: Request) -> Response:
        book_id = self._book_id(request)
        patch = self._parse(UpdateBookRequest, await self._read_json(request))
        book = await self._bounded('update_book', self.service.update_book(book_id, patch))
        return responses.success(book, "Book updated successfully")

    async def delete_book(self, request: Request) -> Response:
        book_id = self._book_id(request)
        await self._bounded('delete_book', self.service.delete_book(book_id))
        return responses.success(message="Book deleted successfully")


def _handler(request: Request) -> BookHandler:
    return request.app.state.book_handler


class BooksEndpoint(HTTPEndpoint):
    """/api/books"""

    async def get(self, request: Request) -> Response:
        return await _handler(request).list_books(request)

    async def post(self, request: Request) -> Response:
        return await _handler(request).create_book(request)


class BookEndpoint(HTTPEndpoint):
    """/api/books/{book_id}"""

    async def get(self, request: Request) -> Response:
        return await _handler(request).get_book(request)

    async def put(self, request: Request) -> Response:
        return await _handler(request).update_book(request)

    async def patch(self, request: Request) -> Response:
        return await _handler(request).update_book(request)

    async def delete(self, request: Request) -> Response:
        return await _handler(request).delete_book(request)
