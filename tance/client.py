"""
Tance client.

This module provides the main entry point:
- Tance: owns the store connection and schema registry, and builds
  collections with configured defaults

Example:
    >>> async with Tance.from_config(TanceConfig.from_env()) as tance:
    ...     employees = tance.set(schema="employee", namespace="acme", expiry_seconds=60)
    ...     await employees.add({"firstname": "Charles", "lastname": "Huckbreimer"})

Invariants:
    - One store connection is shared by every collection of a client
    - Collections are handles; creating one performs no I/O
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from .config import CollectionConfig, TanceConfig
from .errors import StoreConnectionError
from .primitives.redis_set import RedisSet, Schema
from .schema.registry import SkeemaRegistry, get_registry
from .store.base import SetStore, create_set_store

logger = logging.getLogger(__name__)


class Tance:
    """Client binding a set store to a schema registry.

    Attributes:
        store: Shared set store connection
        registry: Registry used to resolve schema type names
        collections: Defaults for new collections
    """

    def __init__(
        self,
        store: SetStore,
        *,
        registry: Optional[SkeemaRegistry] = None,
        collections: Optional[CollectionConfig] = None,
    ) -> None:
        """Initialize client.

        Args:
            store: Set store, e.g. ``redis.asyncio.Redis(decode_responses=True)``
            registry: Optional schema registry (global registry by default)
            collections: Optional collection defaults
        """
        self.store = store
        self.registry = registry or get_registry()
        self.collections = collections or CollectionConfig()
        self._connected = False

    @classmethod
    def from_config(
        cls,
        config: TanceConfig,
        registry: Optional[SkeemaRegistry] = None,
    ) -> Tance:
        """Create a client and its store from configuration."""
        config.log_config()
        return cls(
            create_set_store(config),
            registry=registry,
            collections=config.collections,
        )

    async def connect(self) -> None:
        """Check the store answers before use.

        Raises:
            StoreConnectionError: If the store cannot be reached
        """
        if self._connected:
            return

        try:
            await self.store.ping()
        except Exception as e:
            raise StoreConnectionError(f"Failed to connect: {e}") from e
        self._connected = True
        logger.info("Connected to set store")

    async def ready(self) -> None:
        await self.connect()

    async def close(self) -> None:
        """Close the store connection."""
        await self.store.aclose()
        self._connected = False

    async def __aenter__(self) -> Tance:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def set(
        self,
        schema: Union[Schema, str, None] = None,
        *,
        namespace: Optional[str] = None,
        expiry_seconds: Optional[int] = None,
        id: Optional[str] = None,
    ) -> RedisSet:
        """Create a collection handle.

        Args:
            schema: Schema, registered type name, or None for plain strings
            namespace: Partition tag (configured default if omitted)
            expiry_seconds: TTL (configured default if omitted)
            id: Fixed key (generated if omitted)

        Raises:
            ValueError: If schema names an unregistered type
        """
        if isinstance(schema, str):
            resolved = self.registry.get(schema)
            if resolved is None:
                raise ValueError(f"Unknown schema type '{schema}'")
            schema = resolved

        if expiry_seconds is None:
            expiry_seconds = self.collections.default_expiry_seconds

        return RedisSet(
            store=self.store,
            id=id,
            schema=schema,
            namespace=namespace or self.collections.default_namespace,
            expiry_seconds=expiry_seconds,
        )
