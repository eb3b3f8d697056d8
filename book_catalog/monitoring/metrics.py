"""
메트릭 수집 및 Prometheus 통합
"""
import logging

from prometheus_client import (
    Counter, Histogram, Info,
    REGISTRY, CONTENT_TYPE_LATEST, generate_latest
)

from ..config import Settings

logger = logging.getLogger(__name__)


class MetricsCollector:
    """메트릭 수집기"""

    # 캐시 메트릭
    cache_hits_total = Counter(
        'catalog_cache_hits_total',
        'Total number of cache hits',
        ['scope']
    )

    cache_misses_total = Counter(
        'catalog_cache_misses_total',
        'Total number of cache misses',
        ['scope']
    )

    cache_errors_total = Counter(
        'catalog_cache_errors_total',
        'Total number of absorbed cache failures',
        ['operation']
    )

    cache_invalidations_total = Counter(
        'catalog_cache_invalidations_total',
        'Total number of cache invalidations',
        ['kind']
    )

    # 저장소 호출 메트릭
    repository_calls_total = Counter(
        'catalog_repository_calls_total',
        'Total number of repository calls',
        ['operation', 'status']
    )

    repository_duration_seconds = Histogram(
        'catalog_repository_duration_seconds',
        'Repository call duration in seconds',
        ['operation'],
        buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
    )

    # HTTP 메트릭
    http_requests_total = Counter(
        'catalog_http_requests_total',
        'Total number of HTTP requests',
        ['method', 'status']
    )

    # 에러 메트릭
    errors_total = Counter(
        'catalog_errors_total',
        'Total number of errors',
        ['error_type', 'source']
    )

    # 시스템 정보
    system_info = Info(
        'catalog_system',
        'System information'
    )

    @classmethod
    def init_metrics(cls, settings: Settings):
        """메트릭 초기화"""
        from .. import __version__

        cls.system_info.info({
            'version': __version__,
            'environment': settings.environment,
            'cache_backend': 'redis' if settings.redis_url else ('local' if settings.cache_enabled else 'none'),
            'repository': 'postgres' if settings.database_url else 'memory'
        })

    @classmethod
    def record_cache_hit(cls, scope: str):
        """캐시 히트 기록"""
        cls.cache_hits_total.labels(scope=scope).inc()

    @classmethod
    def record_cache_miss(cls, scope: str):
        """캐시 미스 기록"""
        cls.cache_misses_total.labels(scope=scope).inc()

    @classmethod
    def record_cache_error(cls, operation: str):
        """캐시 장애 기록"""
        cls.cache_errors_total.labels(operation=operation).inc()

    @classmethod
    def record_invalidation(cls, kind: str):
        """캐시 무효화 기록"""
        cls.cache_invalidations_total.labels(kind=kind).inc()

    @classmethod
    def record_repository_call(cls, operation: str, success: bool, duration: float):
        """저장소 호출 메트릭 기록"""
        status = 'success' if success else 'failure'
        cls.repository_calls_total.labels(operation=operation, status=status).inc()
        cls.repository_duration_seconds.labels(operation=operation).observe(duration)

    @classmethod
    def record_http_request(cls, method: str, status: int):
        """HTTP 요청 기록"""
        cls.http_requests_total.labels(method=method, status=str(status)).inc()

    @classmethod
    def record_error(cls, error_type: str, source: str):
        """에러 메트릭 기록"""
        cls.errors_total.labels(
            error_type=error_type,
            source=source
        ).inc()

    @classmethod
    def get_metrics(cls) -> bytes:
        """Prometheus 형식으로 메트릭 반환"""
        return generate_latest(REGISTRY)

    content_type = CONTENT_TYPE_LATEST
