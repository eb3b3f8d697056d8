"""
HTTP API 모듈
"""
from .app import create_app
from .handlers import BookHandler, BooksEndpoint, BookEndpoint
from .middleware import RequestContextMiddleware, REQUEST_ID_HEADER

__all__ = [
    'create_app',
    'BookHandler',
    'BooksEndpoint',
    'BookEndpoint',
    'RequestContextMiddleware',
    'REQUEST_ID_HEADER',
]
