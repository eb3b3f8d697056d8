# book_catalog/__init__.py
"""
Book Catalog Service
캐시 일관성을 보장하는 도서 카탈로그 HTTP 서비스
"""

__version__ = "1.0.0"
__license__ = "MIT"

# 주요 컴포넌트 export
from .api import create_app
from .server import run_server

__all__ = [
    'create_app',
    'run_server',
    '__version__',
]
