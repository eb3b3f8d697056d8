"""
카탈로그 서비스 모듈
"""
from .catalog import CatalogService, CachedRead, SAMPLE_BOOKS

__all__ = [
    'CatalogService',
    'CachedRead',
    'SAMPLE_BOOKS',
]
