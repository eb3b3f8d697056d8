"""
헬스 체크
"""
from typing import Dict, Any, List, Optional, TYPE_CHECKING
from datetime import datetime, timezone
from enum import Enum
import logging

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from ..cache import CacheManager
    from ..repositories import BookRepository

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """헬스 상태"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """컴포넌트 헬스 정보"""
    name: str
    status: HealthStatus
    message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class HealthCheckResult(BaseModel):
    """헬스 체크 결과"""
    status: HealthStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str
    environment: str
    uptime_seconds: float
    components: List[ComponentHealth] = Field(default_factory=list)


class HealthChecker:
    """헬스 체커

    캐시는 보조 수단이므로 캐시 장애는 DEGRADED까지만 반영한다.
    """

    def __init__(
        self,
        cache: "CacheManager",
        repository: "BookRepository",
        environment: str = "development"
    ):
        self.cache = cache
        self.repository = repository
        self.environment = environment
        self.start_time = datetime.now(timezone.utc)

    async def check_health(self) -> HealthCheckResult:
        """전체 헬스 체크"""
        from .. import __version__

        components = [
            await self._check_cache_health(),
            await self._check_repository_health(),
        ]

        uptime = (datetime.now(timezone.utc) - self.start_time).total_seconds()

        return HealthCheckResult(
            status=self._determine_overall_status(components),
            version=__version__,
            environment=self.environment,
            uptime_seconds=uptime,
            components=components
        )

    async def _check_cache_health(self) -> ComponentHealth:
        """캐시 헬스 체크"""
        stats = self.cache.get_stats()

        if not self.cache.enabled:
            return ComponentHealth(
                name="cache",
                status=HealthStatus.HEALTHY,
                message="비활성화됨",
                metadata=stats
            )

        if not await self.cache.ping():
            return ComponentHealth(
                name="cache",
                status=HealthStatus.DEGRADED,
                message="연결 실패 (저장소 직접 조회 중)",
                metadata=stats
            )

        # 에러율 체크
        error_rate = (stats['errors'] / max(stats['total_requests'], 1)) * 100
        if error_rate > 5:
            status = HealthStatus.DEGRADED
            message = f"에러율 상승: {error_rate:.1f}%"
        else:
            status = HealthStatus.HEALTHY
            message = f"정상 (히트율: {stats['hit_rate']:.1f}%)"

        return ComponentHealth(
            name="cache",
            status=status,
            message=message,
            metadata=stats
        )

    async def _check_repository_health(self) -> ComponentHealth:
        """저장소 헬스 체크"""
        try:
            healthy = await self.repository.ping()
        except Exception as e:
            logger.error(f"저장소 헬스 체크 실패: {e}")
            healthy = False

        return ComponentHealth(
            name="repository",
            status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            message="연결됨" if healthy else "연결 실패",
            metadata={'backend': self.repository.name}
        )

    def _determine_overall_status(self, components: List[ComponentHealth]) -> HealthStatus:
        """전체 상태 결정"""
        if any(c.status == HealthStatus.UNHEALTHY for c in components):
            return HealthStatus.UNHEALTHY
        elif any(c.status == HealthStatus.DEGRADED for c in components):
            return HealthStatus.DEGRADED
        else:
            return HealthStatus.HEALTHY
