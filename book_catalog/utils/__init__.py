"""
유틸리티 모듈
"""
from .logging import (
    setup_logging,
    get_logger,
    get_request_id,
    PerformanceLogger,
    AuditLogger,
    ContextFilter,
    set_request_context,
    clear_request_context
)

__all__ = [
    'setup_logging',
    'get_logger',
    'get_request_id',
    'PerformanceLogger',
    'AuditLogger',
    'ContextFilter',
    'set_request_context',
    'clear_request_context',
]
