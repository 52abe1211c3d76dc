"""
Set store abstraction for Tance.

This module provides the pluggable store interface used by collections:
- Redis via ``redis.asyncio`` (production)
- In-memory (for testing)

Invariants:
    - Stores exchange members as str
    - Multi-key commands must target a single routing group
    - Store errors reach the caller unchanged

How to change safely:
    - New backends must implement the SetStore protocol
    - Keep InMemorySetStore replies identical to redis-py's
"""

from .base import SetStore, create_set_store
from .memory import InMemorySetStore, InMemoryStoreError, routing_group

__all__ = [
    # Protocol
    "SetStore",
    # Factory
    "create_set_store",
    # Implementations
    "InMemorySetStore",
    "InMemoryStoreError",
    "routing_group",
]
