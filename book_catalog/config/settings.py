"""
Application settings management using Pydantic v2
"""
from typing import Optional, Any, Dict
from functools import lru_cache
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with Pydantic v2 patterns"""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        populate_by_name=True,
        extra='ignore'
    )

    # Environment settings
    environment: str = Field(default="development", alias="CATALOG_ENV")
    debug: bool = Field(default=False, alias="CATALOG_DEBUG")

    # Server settings
    host: str = Field(default="0.0.0.0", alias="CATALOG_HOST")
    port: int = Field(default=8080, alias="CATALOG_PORT", ge=1, le=65535)
    request_timeout: float = Field(default=10.0, alias="CATALOG_REQUEST_TIMEOUT", gt=0, le=300)
    shutdown_timeout: int = Field(default=10, alias="CATALOG_SHUTDOWN_TIMEOUT", ge=0, le=300)

    # Logging settings
    log_level: str = Field(default="INFO", alias="CATALOG_LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="CATALOG_LOG_FILE")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
        alias="CATALOG_LOG_FORMAT"
    )

    # Cache settings
    cache_enabled: bool = Field(default=True, alias="CATALOG_CACHE_ENABLED")
    redis_url: Optional[str] = Field(default=None, alias="CATALOG_REDIS_URL")
    cache_key_prefix: str = Field(default="catalog", alias="CATALOG_CACHE_KEY_PREFIX", min_length=1)
    cache_max_size: int = Field(default=1000, alias="CATALOG_CACHE_MAX_SIZE", ge=10, le=100000)
    cache_item_ttl: int = Field(default=600, alias="CATALOG_CACHE_ITEM_TTL", ge=1, le=86400)
    cache_collection_ttl: int = Field(default=300, alias="CATALOG_CACHE_COLLECTION_TTL", ge=1, le=86400)
    cache_timeout: float = Field(default=1.0, alias="CATALOG_CACHE_TIMEOUT", gt=0, le=30)

    # Database settings
    database_url: Optional[str] = Field(default=None, alias="CATALOG_DATABASE_URL")
    db_pool_min_size: int = Field(default=5, alias="CATALOG_DB_POOL_MIN_SIZE", ge=1, le=100)
    db_pool_max_size: int = Field(default=25, alias="CATALOG_DB_POOL_MAX_SIZE", ge=1, le=100)
    db_command_timeout: float = Field(default=30.0, alias="CATALOG_DB_COMMAND_TIMEOUT", gt=0, le=300)

    # Monitoring settings
    metrics_enabled: bool = Field(default=True, alias="CATALOG_METRICS_ENABLED")

    # Development helpers
    seed_sample_books: bool = Field(default=False, alias="CATALOG_SEED_SAMPLE_BOOKS")

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed_envs = ['development', 'staging', 'production', 'test']
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {', '.join(allowed_envs)}")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {', '.join(allowed_levels)}")
        return v.upper()

    @field_validator('redis_url', 'database_url', 'log_file', mode='before')
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == 'production'

    def get_log_config(self) -> Dict[str, Any]:
        """Get logging configuration"""
        handlers = {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'json' if self.is_production() else 'default',
                'level': self.log_level,
            }
        }

        # Add file handler only if log file is specified
        if self.log_file:
            handlers['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': self.log_file,
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'formatter': 'json' if self.is_production() else 'default',
                'level': self.log_level,
            }

        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                },
                'json': {
                    'format': '%(asctime)s %(name)s %(levelname)s %(request_id)s %(message)s',
                    'class': 'pythonjsonlogger.jsonlogger.JsonFormatter' if self.is_production() else 'logging.Formatter'
                }
            },
            'handlers': handlers,
            'root': {
                'level': self.log_level,
                'handlers': list(handlers.keys())
            }
        }


@lru_cache()
def get_settings() -> Settings:
    """Get settings singleton"""
    return Settings()
