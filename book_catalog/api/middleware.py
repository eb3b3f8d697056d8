"""
요청 컨텍스트 미들웨어
요청 ID 부여, 접근 로그, 최상위 에러 경계
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..models import handle_unexpected_error
from ..monitoring import MetricsCollector
from ..utils import set_request_context, clear_request_context
from . import responses

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """요청마다 request_id를 컨텍스트에 심고 처리되지 않은 예외를 500 응답으로 변환"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = set_request_context(request_id)
        start_time = time.perf_counter()

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                MetricsCollector.record_error(type(e).__name__, 'http')
                err = handle_unexpected_error(
                    e,
                    request_id=request_id,
                    context={'method': request.method, 'path': request.url.path}
                )
                response = responses.error(err, 500)

            response.headers[REQUEST_ID_HEADER] = request_id
            duration = time.perf_counter() - start_time

            MetricsCollector.record_http_request(request.method, response.status_code)
            logger.info(
                f"{request.method} {request.url.path} {response.status_code} ({duration * 1000:.1f}ms)",
                extra={
                    'method': request.method,
                    'path': request.url.path,
                    'status': response.status_code,
                    'duration': duration
                }
            )
            return response
        finally:
            clear_request_context(token)
