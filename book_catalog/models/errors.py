"""
Error models and exception handling using Pydantic v2
"""
import traceback
from typing import Optional, Dict, Any
import logging

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error envelope"""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    code: str
    request_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response"""
        return self.model_dump(exclude_none=True)


class ServiceError(Exception):
    """Service-level error"""
    status_code = 500

    def __init__(
        self,
        error_code: str = "INTERNAL_ERROR",
        message: str = "Service error occurred",
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(self.message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response"""
        return ErrorResponse(
            error=self.message,
            code=self.error_code,
            request_id=request_id,
            details=self.details
        )

    def log_error(self, request_id: Optional[str] = None):
        """Log the error"""
        log = logger.error if self.status_code >= 500 else logger.warning
        log(
            f"{type(self).__name__} [{self.error_code}]: {self.message}",
            extra={
                'error_code': self.error_code,
                'request_id': request_id,
                'details': self.details
            }
        )


class ValidationError(ServiceError):
    """Input validation error"""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value

        details = {}
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = str(value)

        super().__init__(
            error_code="BAD_REQUEST",
            message=message,
            details=details if details else None
        )


class NotFoundError(ServiceError):
    """Requested book does not exist"""
    status_code = 404

    def __init__(self, message: str = "book not found", book_id: Optional[str] = None):
        self.book_id = book_id
        super().__init__(
            error_code="NOT_FOUND",
            message=message,
            details={'book_id': book_id} if book_id else None
        )


class MethodNotAllowedError(ServiceError):
    """Unsupported HTTP verb on a route"""
    status_code = 405

    def __init__(self, method: Optional[str] = None):
        super().__init__(
            error_code="METHOD_NOT_ALLOWED",
            message="Method not allowed",
            details={'method': method} if method else None
        )


class RepositoryError(ServiceError):
    """Durable store unreachable or failing"""
    status_code = 500

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = {}
        if operation:
            error_details['operation'] = operation
        if details:
            error_details.update(details)

        super().__init__(
            error_code="INTERNAL_ERROR",
            message=message,
            details=error_details if error_details else None
        )


class RequestTimeoutError(ServiceError):
    """Request deadline exceeded"""
    status_code = 500

    def __init__(
        self,
        operation: str,
        timeout: float,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = {
            'operation': operation,
            'timeout': timeout
        }
        if details:
            error_details.update(details)

        super().__init__(
            error_code="INTERNAL_ERROR",
            message=f"{operation} timed out after {timeout}s",
            details=error_details
        )


class CacheError(ServiceError):
    """Cache-related error, never surfaced to clients"""
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = {}
        if operation:
            error_details['operation'] = operation
        if details:
            error_details.update(details)

        super().__init__(
            error_code="CACHE_ERROR",
            message=message,
            details=error_details if error_details else None
        )


def handle_unexpected_error(
    error: Exception,
    request_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ErrorResponse:
    """Handle unexpected errors"""
    # Log the full traceback
    logger.exception(
        "Unexpected error occurred",
        extra={
            'request_id': request_id,
            'context': context
        }
    )

    details = {'type': type(error).__name__}
    if logger.isEnabledFor(logging.DEBUG):
        details['traceback'] = traceback.format_exc()

    return ErrorResponse(
        error="internal server error",
        code="INTERNAL_ERROR",
        request_id=request_id,
        details=details
    )
