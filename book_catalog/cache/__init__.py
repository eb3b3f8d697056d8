"""
캐싱 시스템
"""
from .manager import (
    CacheBackend,
    RedisCache,
    LocalCache,
    CacheManager,
    create_cache_backend
)
from .keys import CacheKey

__all__ = [
    # Manager
    'CacheBackend',
    'RedisCache',
    'LocalCache',
    'CacheManager',
    'create_cache_backend',

    # Keys
    'CacheKey',
]
