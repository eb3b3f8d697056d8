"""
로깅 유틸리티
구조화된 로깅 및 감사 로깅
"""
import logging
import logging.config
import time
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from contextvars import ContextVar

from ..config import Settings

# 요청 컨텍스트
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


class ContextFilter(logging.Filter):
    """컨텍스트 정보를 로그에 추가하는 필터"""

    def filter(self, record):
        record.request_id = request_id_var.get() or getattr(record, 'request_id', None) or '-'
        return True


class AuditLogger:
    """감사 로깅 - 도서 변경 이력"""

    def __init__(self, name: str = "book_catalog"):
        self.logger = logging.getLogger(f"{name}.audit")

    def log_mutation(
        self,
        action: str,
        book_id: str,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """도서 생성/수정/삭제 로그"""
        self.logger.info(
            f"book_{action}",
            extra={
                'event_type': 'mutation',
                'action': action,
                'book_id': book_id,
                'title': title,
                'metadata': metadata or {},
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        )


class PerformanceLogger:
    """성능 로깅을 위한 컨텍스트 매니저"""

    def __init__(self, operation: str, logger: logging.Logger):
        self.operation = operation
        self.logger = logger
        self.start_time: Optional[float] = None
        self.duration: float = 0.0
        self.context: Dict[str, Any] = {}

    def add_context(self, **kwargs):
        """컨텍스트 추가"""
        self.context.update(kwargs)
        return self

    async def __aenter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(f"{self.operation} 시작", extra=self.context)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time

        if exc_type:
            self.logger.debug(
                f"{self.operation} 실패",
                extra={
                    **self.context,
                    'duration': self.duration,
                    'error': str(exc_val)
                }
            )
        else:
            self.logger.debug(
                f"{self.operation} 완료 ({self.duration * 1000:.1f}ms)",
                extra={
                    **self.context,
                    'duration': self.duration
                }
            )


def setup_logging(settings: Settings):
    """로깅 설정"""
    log_config = settings.get_log_config()

    # 컨텍스트 필터 추가
    for handler in log_config.get('handlers', {}).values():
        handler.setdefault('filters', []).append('context_filter')

    log_config.setdefault('filters', {})['context_filter'] = {
        '()': ContextFilter
    }

    # 로깅 설정 적용
    logging.config.dictConfig(log_config)

    # 외부 라이브러리 로깅 레벨 조정
    logging.getLogger('redis').setLevel(logging.WARNING)
    logging.getLogger('asyncpg').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """로거 가져오기"""
    return logging.getLogger(name)


def set_request_context(request_id: Optional[str] = None):
    """요청 컨텍스트 설정"""
    return request_id_var.set(request_id)


def clear_request_context(token=None):
    """요청 컨텍스트 클리어"""
    if token is not None:
        request_id_var.reset(token)
    else:
        request_id_var.set(None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()
