"""
모니터링 및 메트릭 모듈
"""
from .health import (
    HealthStatus,
    ComponentHealth,
    HealthCheckResult,
    HealthChecker
)
from .metrics import MetricsCollector

__all__ = [
    # Health
    'HealthStatus',
    'ComponentHealth',
    'HealthCheckResult',
    'HealthChecker',

    # Metrics
    'MetricsCollector',
]
