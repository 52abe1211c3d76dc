"""
Base protocol for the set store used by Tance collections.

This module defines the SetStore protocol: the subset of Redis set, key
and connection commands that collections rely on. ``redis.asyncio.Redis``
created with ``decode_responses=True`` satisfies it as-is.

Invariants:
    - Members are exchanged as ``str``
    - Multi-key commands may only name keys in one routing group
    - Transport and server errors propagate unchanged to the caller

How to change safely:
    - Protocol changes require updating InMemorySetStore as well
    - Only add commands that exist in redis-py with the same signature
"""

from __future__ import annotations

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Iterable,
    List,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

if TYPE_CHECKING:
    from ..config import TanceConfig

logger = logging.getLogger(__name__)

# redis-py returns sets or lists depending on command and protocol version
Members = Union[Iterable[str], List[str]]


@runtime_checkable
class SetStore(Protocol):
    """Protocol for set store backends.

    All commands are coroutines resolving to the store's native reply.

    Example:
        >>> store = redis.asyncio.Redis.from_url(url, decode_responses=True)
        >>> await store.sadd("set-{employee-ns1}-abc", '{"firstname":"Charles"}')
        1
    """

    async def sadd(self, name: str, *values: str) -> int:
        """Add members, returning how many were new."""
        ...

    async def smembers(self, name: str) -> Members:
        """All members of the set."""
        ...

    async def srandmember(self, name: str, number: Optional[int] = None) -> Any:
        """Random members; a list when number is given."""
        ...

    async def srem(self, name: str, *values: str) -> int:
        """Remove members, returning how many were present."""
        ...

    async def sismember(self, name: str, value: str) -> Any:
        """Truthy when value is a member."""
        ...

    async def scard(self, name: str) -> int:
        """Number of members."""
        ...

    async def sunion(self, keys: Any, *args: str) -> Members:
        ...

    async def sunionstore(self, dest: str, keys: Any, *args: str) -> int:
        ...

    async def sinter(self, keys: Any, *args: str) -> Members:
        ...

    async def sinterstore(self, dest: str, keys: Any, *args: str) -> int:
        ...

    async def sdiff(self, keys: Any, *args: str) -> Members:
        ...

    async def sdiffstore(self, dest: str, keys: Any, *args: str) -> int:
        ...

    async def delete(self, *names: str) -> int:
        """Remove keys (the store's DEL)."""
        ...

    async def expire(self, name: str, time: int) -> Any:
        """Set a TTL in seconds."""
        ...

    async def ttl(self, name: str) -> int:
        """Remaining TTL in seconds; -1 without TTL, -2 when missing."""
        ...

    async def ping(self) -> Any:
        ...

    async def aclose(self) -> None:
        ...


def create_set_store(config: "TanceConfig") -> SetStore:
    """Factory function to create a set store from configuration.

    Args:
        config: Tance configuration

    Returns:
        Appropriate SetStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend

    if config.store_backend == StoreBackend.REDIS:
        from redis.asyncio import Redis

        logger.debug(
            "Creating Redis set store", extra={"redis_url": config.redis.redacted_url}
        )
        return Redis.from_url(
            config.redis.url,
            decode_responses=True,
            socket_timeout=config.redis.socket_timeout,
            max_connections=config.redis.max_connections,
            health_check_interval=config.redis.health_check_interval,
        )
    elif config.store_backend == StoreBackend.MEMORY:
        from .memory import InMemorySetStore

        return InMemorySetStore()
    else:
        raise ValueError(f"Unsupported store backend: {config.store_backend}")
