"""
데이터 모델 및 에러 정의
"""
from .book import (
    BookRecord,
    CreateBookRequest,
    UpdateBookRequest,
    FilterCriteria,
    PaginatedBooks
)
from .pagination import (
    Pagination,
    PaginationInfo,
    DEFAULT_PAGE,
    DEFAULT_LIMIT,
    MAX_LIMIT
)
from .errors import (
    ErrorResponse,
    ServiceError,
    ValidationError,
    NotFoundError,
    MethodNotAllowedError,
    RepositoryError,
    RequestTimeoutError,
    CacheError,
    handle_unexpected_error
)

__all__ = [
    # Books
    'BookRecord',
    'CreateBookRequest',
    'UpdateBookRequest',
    'FilterCriteria',
    'PaginatedBooks',

    # Pagination
    'Pagination',
    'PaginationInfo',
    'DEFAULT_PAGE',
    'DEFAULT_LIMIT',
    'MAX_LIMIT',

    # Errors
    'ErrorResponse',
    'ServiceError',
    'ValidationError',
    'NotFoundError',
    'MethodNotAllowedError',
    'RepositoryError',
    'RequestTimeoutError',
    'CacheError',
    'handle_unexpected_error',
]
