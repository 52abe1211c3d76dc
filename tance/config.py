"""
Configuration management for Tance.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Secrets (passwords in REDIS_URL) are never logged

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep collection defaults stable; they become part of stored keys
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Supported set store backends."""

    REDIS = "redis"
    MEMORY = "memory"


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection configuration.

    Attributes:
        url: Connection URL (redis://, rediss:// or unix://)
        socket_timeout: Socket timeout in seconds (None = block)
        max_connections: Connection pool size
        health_check_interval: Seconds between idle connection health checks
    """

    url: str = "redis://localhost:6379/0"
    socket_timeout: Optional[float] = 5.0
    max_connections: int = 50
    health_check_interval: int = 30

    @classmethod
    def from_env(cls) -> RedisConfig:
        """Load configuration from environment variables."""
        timeout = os.getenv("REDIS_SOCKET_TIMEOUT", "5.0")
        return cls(
            url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            socket_timeout=float(timeout) if timeout else None,
            max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "50")),
            health_check_interval=int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30")),
        )

    @property
    def redacted_url(self) -> str:
        """URL with any password replaced by '***'."""
        parts = urlsplit(self.url)
        if parts.password is None:
            return self.url
        netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
        return urlunsplit(parts._replace(netloc=netloc))


@dataclass(frozen=True)
class CollectionConfig:
    """Defaults applied to collections created through the Tance client.

    Attributes:
        default_namespace: Namespace used when none is given
        default_expiry_seconds: TTL applied when none is given (None = no TTL)
    """

    default_namespace: str = "default"
    default_expiry_seconds: Optional[int] = None

    @classmethod
    def from_env(cls) -> CollectionConfig:
        """Load configuration from environment variables."""
        expiry = os.getenv("TANCE_DEFAULT_EXPIRY_SECONDS", "")
        return cls(
            default_namespace=os.getenv("TANCE_DEFAULT_NAMESPACE", "default"),
            default_expiry_seconds=int(expiry) if expiry else None,
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class TanceConfig:
    """Complete Tance configuration.

    Attributes:
        store_backend: Which set store to use
        redis: Redis configuration (if store_backend is REDIS)
        collections: Collection defaults
        observability: Logging configuration
    """

    store_backend: StoreBackend = StoreBackend.REDIS
    redis: RedisConfig = field(default_factory=RedisConfig)
    collections: CollectionConfig = field(default_factory=CollectionConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> TanceConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        backend_str = os.getenv("TANCE_STORE_BACKEND", "redis").lower()
        try:
            store_backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid TANCE_STORE_BACKEND '{backend_str}'. Must be one of: redis, memory"
            )

        config = cls(
            store_backend=store_backend,
            redis=RedisConfig.from_env(),
            collections=CollectionConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.store_backend == StoreBackend.REDIS:
            if not self.redis.url:
                raise ValueError("REDIS_URL is required when TANCE_STORE_BACKEND=redis")
            scheme = urlsplit(self.redis.url).scheme
            if scheme not in ("redis", "rediss", "unix"):
                raise ValueError(
                    f"REDIS_URL must use redis://, rediss:// or unix://, got '{scheme}://'"
                )

        if not self.collections.default_namespace:
            raise ValueError("TANCE_DEFAULT_NAMESPACE must not be empty")
        expiry = self.collections.default_expiry_seconds
        if expiry is not None and expiry <= 0:
            raise ValueError(
                f"TANCE_DEFAULT_EXPIRY_SECONDS must be positive, got {expiry}"
            )

        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"LOG_FORMAT must be 'json' or 'text', got '{self.observability.log_format}'"
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Tance configuration loaded",
            extra={
                "store_backend": self.store_backend.value,
                "redis_url": self.redis.redacted_url
                if self.store_backend == StoreBackend.REDIS
                else None,
                "default_namespace": self.collections.default_namespace,
                "default_expiry_seconds": self.collections.default_expiry_seconds,
                "log_level": self.observability.log_level,
            },
        )
