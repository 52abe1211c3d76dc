"""
Store-backed data primitives for Tance.

Invariants:
    - Primitives are lightweight handles; constructing one performs no I/O
    - All store access goes through the injected SetStore
"""

from .redis_set import DEFAULT_NAMESPACE, ModifyResult, RedisSet

__all__ = [
    "RedisSet",
    "ModifyResult",
    "DEFAULT_NAMESPACE",
]
