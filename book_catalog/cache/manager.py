"""
캐시 관리자
Redis 기반 분산 캐싱 및 로컬 폴백
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional, Any, Callable, Dict, Type, TypeVar, Union

import redis.asyncio as redis
from cachetools import TLRUCache
from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..config import Settings
from ..models import CacheError
from ..monitoring.metrics import MetricsCollector
from .keys import CacheKey

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)

Payload = Union[bytes, str]

# 백엔드 호출 실패를 미스와 구분하기 위한 표식
_UNAVAILABLE = object()


class CacheBackend(ABC):
    """캐시 백엔드 인터페이스

    ``get``은 키가 없으면 ``None``을 반환하고, 전송 실패 시에는
    ``CacheError``를 발생시킨다.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Payload]:
        """캐시에서 값 가져오기"""
        pass

    @abstractmethod
    async def set(self, key: str, value: Payload, ttl: Optional[int] = None) -> bool:
        """캐시에 값 설정"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """캐시에서 값 삭제"""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """캐시 클리어"""
        pass

    @abstractmethod
    async def incr(self, key: str) -> int:
        """카운터 원자적 증가"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """연결 확인"""
        pass

    async def close(self):
        """리소스 정리"""
        pass


class RedisCache(CacheBackend):
    """Redis 캐시 백엔드"""

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "catalog",
        socket_timeout: Optional[float] = None
    ):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.socket_timeout = socket_timeout
        self._client: Optional[redis.Redis] = None
        self._lock = asyncio.Lock()

    async def _get_client(self) -> redis.Redis:
        """Redis 클라이언트 가져오기"""
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    self._client = redis.from_url(
                        self.redis_url,
                        decode_responses=False,
                        socket_timeout=self.socket_timeout,
                        socket_connect_timeout=self.socket_timeout
                    )
        return self._client

    def _make_key(self, key: str) -> str:
        """키 생성"""
        return f"{self.key_prefix}:{key}"

    async def get(self, key: str) -> Optional[bytes]:
        try:
            client = await self._get_client()
            return await client.get(self._make_key(key))
        except Exception as e:
            raise CacheError(f"캐시 조회 실패: {e}", operation='get', details={'key': key}) from e

    async def set(self, key: str, value: Payload, ttl: Optional[int] = None) -> bool:
        try:
            client = await self._get_client()
            full_key = self._make_key(key)

            if ttl:
                await client.setex(full_key, ttl, value)
            else:
                await client.set(full_key, value)

            return True

        except Exception as e:
            raise CacheError(f"캐시 설정 실패: {e}", operation='set', details={'key': key}) from e

    async def delete(self, key: str) -> bool:
        try:
            client = await self._get_client()
            result = await client.delete(self._make_key(key))
            return result > 0
        except Exception as e:
            raise CacheError(f"캐시 삭제 실패: {e}", operation='delete', details={'key': key}) from e

    async def clear(self) -> int:
        """네임스페이스 내 모든 키 삭제"""
        try:
            client = await self._get_client()

            count = 0
            async for key in client.scan_iter(match=self._make_key("*")):
                await client.delete(key)
                count += 1

            return count

        except Exception as e:
            raise CacheError(f"캐시 클리어 실패: {e}", operation='clear') from e

    async def incr(self, key: str) -> int:
        try:
            client = await self._get_client()
            return int(await client.incr(self._make_key(key)))
        except Exception as e:
            raise CacheError(f"카운터 증가 실패: {e}", operation='incr', details={'key': key}) from e

    async def ping(self) -> bool:
        try:
            client = await self._get_client()
            return bool(await client.ping())
        except Exception as e:
            raise CacheError(f"Redis ping 실패: {e}", operation='ping') from e

    async def close(self):
        """연결 종료"""
        if self._client:
            await self._client.aclose()
            self._client = None


class LocalCache(CacheBackend):
    """로컬 메모리 캐시 백엔드 (폴백용)

    항목마다 TTL이 다르므로 ``TLRUCache``를 사용한다. 버전 카운터는
    LRU 축출 대상이 되지 않도록 별도 딕셔너리에 보관한다.
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: int = 3600,
        timer: Callable[[], float] = time.monotonic
    ):
        self.default_ttl = default_ttl
        self.cache = TLRUCache(maxsize=max_size, ttu=self._time_to_use, timer=timer)
        self._counters: Dict[str, int] = {}

    @staticmethod
    def _time_to_use(_key: str, value: tuple, now: float) -> float:
        return now + value[1]

    async def get(self, key: str) -> Optional[Payload]:
        if key in self._counters:
            return str(self._counters[key])
        entry = self.cache.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: Payload, ttl: Optional[int] = None) -> bool:
        self.cache[key] = (value, ttl or self.default_ttl)
        return True

    async def delete(self, key: str) -> bool:
        removed = self._counters.pop(key, None) is not None
        return self.cache.pop(key, None) is not None or removed

    async def clear(self) -> int:
        count = len(self.cache) + len(self._counters)
        self.cache.clear()
        self._counters.clear()
        return count

    async def incr(self, key: str) -> int:
        self._counters[key] = self._counters.get(key, 0) + 1
        return self._counters[key]

    async def ping(self) -> bool:
        return True


class CacheManager:
    """캐시 관리자 - 전략 패턴 사용

    백엔드 장애(예외, 타임아웃)는 모두 여기서 흡수되어 미스로 취급된다.
    ``backend``가 ``None``이면 캐시가 비활성화된 상태다.
    """

    def __init__(
        self,
        backend: Optional[CacheBackend],
        timeout: float = 1.0,
        logger: Optional[logging.Logger] = None
    ):
        self.backend = backend
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._stats = {
            'hits': 0,
            'misses': 0,
            'sets': 0,
            'deletes': 0,
            'invalidations': 0,
            'errors': 0
        }

    @property
    def enabled(self) -> bool:
        return self.backend is not None

    async def _run(self, operation: str, *args: Any) -> Any:
        """백엔드 호출 (타임아웃 적용, 장애 시 _UNAVAILABLE 반환)"""
        try:
            return await asyncio.wait_for(
                getattr(self.backend, operation)(*args),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self._record_error(operation, f"timed out after {self.timeout}s")
        except CacheError as e:
            self._record_error(operation, e.message)
        except Exception as e:
            self._record_error(operation, f"{type(e).__name__}: {e}")
        return _UNAVAILABLE

    def _record_error(self, operation: str, reason: str):
        self._stats['errors'] += 1
        MetricsCollector.record_cache_error(operation)
        self.logger.error(f"캐시 {operation} 오류 (요청은 계속 진행): {reason}")

    def _record_miss(self, key: str):
        self._stats['misses'] += 1
        MetricsCollector.record_cache_miss(CacheKey.scope(key))

    async def get_model(self, key: str, model_type: Type[M]) -> Optional[M]:
        """캐시에서 값을 가져와 역직렬화 (실패는 모두 미스)"""
        if not self.enabled:
            return None

        raw = await self._run('get', key)
        if raw is _UNAVAILABLE:
            self._record_miss(key)
            return None
        if raw is None:
            self._record_miss(key)
            self.logger.debug(f"캐시 미스: {key}")
            return None

        try:
            value = model_type.model_validate_json(raw)
        except PydanticValidationError as e:
            self._stats['errors'] += 1
            MetricsCollector.record_cache_error('decode')
            self.logger.warning(f"역직렬화 실패로 캐시 항목 폐기: {key} ({e.error_count()} errors)")
            await self.delete(key)
            self._record_miss(key)
            return None

        self._stats['hits'] += 1
        MetricsCollector.record_cache_hit(CacheKey.scope(key))
        self.logger.debug(f"캐시 히트: {key}")
        return value

    async def set_model(self, key: str, value: BaseModel, ttl: int) -> bool:
        """직렬화 후 캐시에 값 설정"""
        if not self.enabled:
            return False

        result = await self._run('set', key, value.model_dump_json(), ttl)
        if result is True:
            self._stats['sets'] += 1
            self.logger.debug(f"캐시 설정: {key} (TTL: {ttl}초)")
            return True
        return False

    async def delete(self, key: str) -> bool:
        """캐시에서 값 삭제"""
        if not self.enabled:
            return False

        result = await self._run('delete', key)
        if result is _UNAVAILABLE:
            return False
        self._stats['deletes'] += 1
        self.logger.debug(f"캐시 삭제: {key}")
        return bool(result)

    async def clear(self) -> int:
        """캐시 클리어"""
        if not self.enabled:
            return 0

        result = await self._run('clear')
        if result is _UNAVAILABLE:
            return 0
        self.logger.info(f"캐시 클리어됨: {result}개 항목")
        return result

    async def get_collection_version(self) -> Optional[int]:
        """현재 목록 버전 (캐시를 사용할 수 없으면 None)"""
        if not self.enabled:
            return None

        raw = await self._run('get', CacheKey.collection_version())
        if raw is _UNAVAILABLE:
            return None
        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError:
            self._record_error('get', f"invalid collection version {raw!r}")
            return None

    async def bump_collection_version(self) -> Optional[int]:
        """목록 버전 증가 - 모든 목록 페이지 항목을 한 번에 무효화"""
        if not self.enabled:
            return None

        result = await self._run('incr', CacheKey.collection_version())
        if result is _UNAVAILABLE:
            return None
        self._stats['invalidations'] += 1
        MetricsCollector.record_invalidation('collection')
        self.logger.debug(f"목록 캐시 버전 증가: v{result}")
        return result

    async def invalidate_item(self, key: str) -> bool:
        """단일 항목 무효화"""
        deleted = await self.delete(key)
        if deleted:
            self._stats['invalidations'] += 1
            MetricsCollector.record_invalidation('item')
        return deleted

    async def ping(self) -> bool:
        if not self.enabled:
            return False
        result = await self._run('ping')
        return result is True

    def get_stats(self) -> Dict[str, Any]:
        """캐시 통계 가져오기"""
        total_requests = self._stats['hits'] + self._stats['misses']
        hit_rate = (self._stats['hits'] / total_requests * 100) if total_requests > 0 else 0

        return {
            **self._stats,
            'enabled': self.enabled,
            'total_requests': total_requests,
            'hit_rate': round(hit_rate, 2)
        }

    async def close(self):
        """리소스 정리"""
        if self.backend is not None:
            await self.backend.close()


def create_cache_backend(settings: Settings) -> Optional[CacheBackend]:
    """설정에 따라 백엔드 생성 (Redis URL이 없으면 로컬 캐시)"""
    if not settings.cache_enabled:
        logger.info("캐시 비활성화됨 - 모든 조회는 저장소로 전달")
        return None

    if settings.redis_url:
        return RedisCache(
            settings.redis_url,
            key_prefix=settings.cache_key_prefix,
            socket_timeout=settings.cache_timeout
        )

    return LocalCache(
        max_size=settings.cache_max_size,
        default_ttl=settings.cache_item_ttl
    )
