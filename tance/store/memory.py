"""
In-memory set store implementation for testing.

This module provides a simple in-memory backend for:
- Unit and integration tests
- Local development without a Redis server

It mirrors the Redis reply types and key semantics that collections rely
on: empty sets do not exist, *STORE commands overwrite the destination and
drop its TTL, and multi-key commands refuse keys from different routing
groups the way a Redis Cluster does.

Invariants:
    - All data is lost on process exit
    - Key TTLs follow the injected clock
    - Safe to use from multiple coroutines on one event loop

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the SetStore protocol
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
import re
import time
from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

_HASH_TAG = re.compile(r"\{([^}]+)\}")


class InMemoryStoreError(Exception):
    """Error reply from the in-memory store."""
    pass


def routing_group(key: str) -> str:
    """Part of a key that decides its slot: the first non-empty {...} tag."""
    match = _HASH_TAG.search(key)
    return match.group(1) if match else key


def _flatten(keys: Any, args: Tuple[str, ...]) -> List[str]:
    if isinstance(keys, (str, bytes)):
        keys = [keys]
    return list(keys) + list(args)


class InMemorySetStore:
    """In-memory implementation of SetStore for testing.

    Attributes:
        cluster_mode: Reject multi-key commands spanning routing groups
        calls: Log of (command, args) for every command issued

    Example:
        >>> store = InMemorySetStore()
        >>> await store.sadd("set-{string-default}-1", "a", "b")
        2
        >>> await store.smembers("set-{string-default}-1")
        {'a', 'b'}
    """

    def __init__(
        self,
        cluster_mode: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize in-memory store.

        Args:
            cluster_mode: Enforce CROSSSLOT rules on multi-key commands
            clock: Time source for key expiry, in seconds
        """
        self.cluster_mode = cluster_mode
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self._clock = clock
        self._sets: Dict[str, Set[str]] = {}
        self._expires_at: Dict[str, float] = {}
        self._failures: Dict[str, List[Exception]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._closed = False

    async def _command(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self._closed:
            raise InMemoryStoreError("Connection closed")
        if self._failures[name]:
            raise self._failures[name].pop(0)

    def _purge(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._sets.pop(key, None)
            self._expires_at.pop(key, None)

    def _get(self, key: str) -> Set[str]:
        self._purge(key)
        return self._sets.get(key, set())

    def _put(self, key: str, members: Set[str]) -> None:
        self._expires_at.pop(key, None)
        if members:
            self._sets[key] = set(members)
        else:
            self._sets.pop(key, None)

    def _check_slots(self, keys: Iterable[str]) -> None:
        if not self.cluster_mode:
            return
        groups = {routing_group(k) for k in keys}
        if len(groups) > 1:
            raise InMemoryStoreError(
                "CROSSSLOT Keys in request don't hash to the same slot"
            )

    async def sadd(self, name: str, *values: str) -> int:
        await self._command("sadd", name, *values)
        if not values:
            raise InMemoryStoreError("wrong number of arguments for 'sadd' command")
        async with self._lock:
            members = self._get(name)
            before = len(members)
            members = members | set(values)
            self._sets[name] = members
            return len(members) - before

    async def smembers(self, name: str) -> Set[str]:
        await self._command("smembers", name)
        return set(self._get(name))

    async def srandmember(self, name: str, number: Optional[int] = None) -> Any:
        await self._command("srandmember", name, number)
        members = list(self._get(name))
        if number is None:
            return random.choice(members) if members else None
        if number >= 0:
            return random.sample(members, min(number, len(members)))
        # Negative counts allow repeats, as in Redis
        return [random.choice(members) for _ in range(-number)] if members else []

    async def srem(self, name: str, *values: str) -> int:
        await self._command("srem", name, *values)
        async with self._lock:
            members = self._get(name)
            removed = len(members & set(values))
            remaining = members - set(values)
            if remaining:
                self._sets[name] = remaining
            else:
                self._sets.pop(name, None)
                self._expires_at.pop(name, None)
            return removed

    async def sismember(self, name: str, value: str) -> bool:
        await self._command("sismember", name, value)
        return value in self._get(name)

    async def scard(self, name: str) -> int:
        await self._command("scard", name)
        return len(self._get(name))

    def _union(self, keys: List[str]) -> Set[str]:
        result: Set[str] = set()
        for key in keys:
            result |= self._get(key)
        return result

    def _inter(self, keys: List[str]) -> Set[str]:
        result = set(self._get(keys[0]))
        for key in keys[1:]:
            result &= self._get(key)
        return result

    def _diff(self, keys: List[str]) -> Set[str]:
        result = set(self._get(keys[0]))
        for key in keys[1:]:
            result -= self._get(key)
        return result

    async def _read(self, command: str, combine: Callable, keys: Any, args: Tuple[str, ...]) -> Set[str]:
        key_list = _flatten(keys, args)
        await self._command(command, *key_list)
        self._check_slots(key_list)
        return combine(key_list)

    async def _store(
        self, command: str, combine: Callable, dest: str, keys: Any, args: Tuple[str, ...]
    ) -> int:
        key_list = _flatten(keys, args)
        await self._command(command, dest, *key_list)
        self._check_slots([dest] + key_list)
        async with self._lock:
            result = combine(key_list)
            self._put(dest, result)
            return len(result)

    async def sunion(self, keys: Any, *args: str) -> Set[str]:
        return await self._read("sunion", self._union, keys, args)

    async def sunionstore(self, dest: str, keys: Any, *args: str) -> int:
        return await self._store("sunionstore", self._union, dest, keys, args)

    async def sinter(self, keys: Any, *args: str) -> Set[str]:
        return await self._read("sinter", self._inter, keys, args)

    async def sinterstore(self, dest: str, keys: Any, *args: str) -> int:
        return await self._store("sinterstore", self._inter, dest, keys, args)

    async def sdiff(self, keys: Any, *args: str) -> Set[str]:
        return await self._read("sdiff", self._diff, keys, args)

    async def sdiffstore(self, dest: str, keys: Any, *args: str) -> int:
        return await self._store("sdiffstore", self._diff, dest, keys, args)

    async def delete(self, *names: str) -> int:
        await self._command("delete", *names)
        deleted = 0
        async with self._lock:
            for name in names:
                self._purge(name)
                if self._sets.pop(name, None) is not None:
                    deleted += 1
                self._expires_at.pop(name, None)
        return deleted

    async def expire(self, name: str, time: int) -> bool:
        await self._command("expire", name, time)
        if not self._get(name):
            return False
        self._expires_at[name] = self._clock() + time
        return True

    async def ttl(self, name: str) -> int:
        await self._command("ttl", name)
        if not self._get(name):
            return -2
        deadline = self._expires_at.get(name)
        if deadline is None:
            return -1
        return math.ceil(deadline - self._clock())

    async def ping(self) -> bool:
        await self._command("ping")
        return True

    async def aclose(self) -> None:
        """Close and clear all data."""
        self._closed = True
        self._sets.clear()
        self._expires_at.clear()
        logger.debug("InMemorySetStore closed")

    # Testing helpers

    def fail_next(self, command: str, exception: Exception) -> None:
        """Make the next call of command raise exception."""
        self._failures[command].append(exception)

    def keys(self) -> List[str]:
        """Live keys, sorted (testing helper)."""
        return sorted(k for k in list(self._sets) if self._get(k))

    def commands(self) -> List[str]:
        """Names of issued commands, in order (testing helper)."""
        return [name for name, _ in self.calls]

    def reset_calls(self) -> None:
        """Forget the command log (testing helper)."""
        self.calls.clear()
