# book_catalog/api/app.py
"""
Starlette application factory
Wires repository, cache, service and routes together
"""
from contextlib import asynccontextmanager
from typing import Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from ..cache import CacheManager, create_cache_backend
from ..config import Settings, get_settings
from ..models import ErrorResponse, MethodNotAllowedError, ServiceError
from ..monitoring import HealthChecker, HealthStatus, MetricsCollector
from ..repositories import BookRepository, create_repository
from ..services import CatalogService
from ..utils import get_logger, get_request_id
from . import responses
from .handlers import BookHandler, BooksEndpoint, BookEndpoint
from .middleware import RequestContextMiddleware

logger = get_logger(__name__)

BANNER = "Library API v1.0"

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


async def service_error_handler(request: Request, exc: ServiceError) -> Response:
    request_id = get_request_id()
    exc.log_error(request_id)
    if exc.status_code >= 500:
        MetricsCollector.record_error(type(exc).__name__, 'service')
    return responses.from_service_error(exc, request_id)


async def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Routing errors raised by Starlette itself (unknown path, wrong verb)"""
    request_id = get_request_id()

    if exc.status_code == 405:
        err = MethodNotAllowedError(request.method).to_response(request_id)
    else:
        err = ErrorResponse(
            error="not found" if exc.status_code == 404 else exc.detail,
            code=_HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL_ERROR"),
            request_id=request_id
        )

    return responses.error(err, exc.status_code, headers=exc.headers)


async def root(request: Request) -> Response:
    return PlainTextResponse(BANNER)


async def health(request: Request) -> Response:
    result = await request.app.state.health_checker.check_health()
    status_code = 503 if result.status == HealthStatus.UNHEALTHY else 200
    return JSONResponse(result.model_dump(mode='json'), status_code=status_code)


async def metrics(request: Request) -> Response:
    return Response(MetricsCollector.get_metrics(), media_type=MetricsCollector.content_type)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[BookRepository] = None,
    cache: Optional[CacheManager] = None
) -> Starlette:
    """Build the ASGI app

    Anything not injected is built from ``settings``. Logging is not
    configured here; ``server.run_server`` does that before serving.
    """
    settings = settings or get_settings()
    repository = repository or create_repository(settings)
    if cache is None:
        cache = CacheManager(
            create_cache_backend(settings),
            timeout=settings.cache_timeout,
            logger=get_logger('book_catalog.cache')
        )

    service = CatalogService(
        repository,
        cache,
        settings,
        logger=get_logger('book_catalog.service')
    )

    if settings.metrics_enabled:
        MetricsCollector.init_metrics(settings)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        await repository.initialize()
        if settings.seed_sample_books:
            await service.seed_sample_books()

        logger.info(
            f"Book catalog ready (environment={settings.environment}, "
            f"repository={repository.name}, cache={'on' if cache.enabled else 'off'})"
        )
        try:
            yield
        finally:
            logger.info("Shutting down book catalog")
            try:
                await cache.close()
            except Exception as e:
                logger.error(f"Error closing cache: {e}")
            try:
                await repository.close()
            except Exception as e:
                logger.error(f"Error closing repository: {e}")

    routes = [
        Route("/", root),
        Route("/health", health),
        Route("/api/books", BooksEndpoint),
        Route("/api/books/{book_id}", BookEndpoint),
    ]
    if settings.metrics_enabled:
        routes.append(Route("/metrics", metrics))

    app = Starlette(
        debug=settings.debug,
        routes=routes,
        middleware=[Middleware(RequestContextMiddleware)],
        exception_handlers={
            ServiceError: service_error_handler,
            HTTPException: http_exception_handler,
        },
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.service = service
    app.state.book_handler = BookHandler(
        service,
        request_timeout=settings.request_timeout,
        logger=get_logger('book_catalog.api')
    )
    app.state.health_checker = HealthChecker(cache, repository, settings.environment)

    return app
