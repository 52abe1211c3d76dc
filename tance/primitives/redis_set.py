"""
Schema-aware Redis set collections.

A RedisSet is a lightweight handle on one Redis set whose members are
documents validated and encoded by a schema. The key embeds the schema
type and namespace inside a hash tag, ``set-{<type>-<namespace>}-<uuid>``,
so every collection of the same type and namespace lands in the same
cluster slot and multi-key set commands between them are legal.

Invariants:
    - Every member was produced by prepare() and is read through postpare()
    - Readers only ever see documents at the schema's latest version
    - Group operations only combine collections sharing namespace and type,
      checked before any store command is sent
    - Mutations refresh the key's TTL; a failed refresh never fails the write

How to change safely:
    - Keep new_key() byte-stable; existing data is addressed by it
    - modify() is an optimistic read-modify-write without a transaction;
      concurrent writers between the snapshot and the write-back can be lost
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ..errors import CrossSlotError, DocumentValidationError, UnsupportedOperationError
from ..schema.skeema import Skeema, StringSchema
from ..store.base import SetStore

logger = logging.getLogger(__name__)

Schema = Union[Skeema, StringSchema]
Operand = Union[str, "RedisSet"]
ChangeFn = Callable[[List[Any]], Union[Sequence[Any], Awaitable[Sequence[Any]]]]

TYPE_KEY_LENGTH = 18
DEFAULT_NAMESPACE = "default"


@dataclass
class ModifyResult:
    """Outcome of RedisSet.modify().

    Attributes:
        original: Members before the change
        changed: Members after the change
        added: Number of members written
        removed: Number of members deleted
    """

    original: List[Any] = field(default_factory=list)
    changed: List[Any] = field(default_factory=list)
    added: int = 0
    removed: int = 0


class RedisSet:
    """A named, schema-bound, optionally expiring set of documents.

    Attributes:
        store: Set store the members live in
        id: Store key of the set
        schema: Skeema or StringSchema describing members
        namespace: Partition tag; sets in different namespaces never combine
        expiry_seconds: TTL refreshed by every mutation (None = no TTL)

    Example:
        >>> employees = RedisSet(store, schema=employee_schema, namespace="acme")
        >>> await employees.add({"firstname": "Charles", "lastname": "Huckbreimer"})
        >>> await employees.members()
        [{'firstname': 'Charles', 'lastname': 'Huckbreimer', 'id': 'set-{employee-acme}-...', ...}]
    """

    def __init__(
        self,
        store: Optional[SetStore],
        id: Optional[str] = None,
        schema: Optional[Schema] = None,
        namespace: Optional[str] = None,
        expiry_seconds: Optional[int] = None,
    ) -> None:
        """Create a handle. Performs no I/O.

        Raises:
            DocumentValidationError: If store is None
        """
        if store is None:
            raise DocumentValidationError("Can't create a collection without a store")
        self.store = store
        self.schema: Schema = schema if schema is not None else StringSchema()
        self.namespace = namespace or DEFAULT_NAMESPACE
        self.expiry_seconds = expiry_seconds
        self.id = id or self.new_key()

    def __repr__(self) -> str:
        return (
            f"RedisSet(id={self.id!r}, type={self.schema.type!r}, "
            f"namespace={self.namespace!r})"
        )

    def new_key(self) -> str:
        """Generate a fresh key in this collection's routing group."""
        type_name = self.schema.type.lower()[:TYPE_KEY_LENGTH]
        return f"set-{{{type_name}-{self.namespace}}}-{uuid.uuid4()}"

    def _spawn(self, id: Optional[str] = None) -> RedisSet:
        return RedisSet(
            store=self.store,
            id=id,
            schema=self.schema,
            namespace=self.namespace,
            expiry_seconds=self.expiry_seconds,
        )

    async def refresh_expiry(self) -> None:
        """Push the key's TTL back out to expiry_seconds.

        Failures are logged and swallowed.
        """
        if not self.expiry_seconds:
            return
        try:
            await self.store.expire(self.id, self.expiry_seconds)
        except Exception:
            logger.warning(
                "Failed to refresh collection expiry",
                exc_info=True,
                extra={"key": self.id, "expiry_seconds": self.expiry_seconds},
            )

    # Encoding

    def prepare(self, doc: Any) -> str:
        """Validate doc and encode it as a set member.

        Versioned schemas get ``id`` (when missing), ``type`` and ``version``
        stamped on a copy of doc.

        Raises:
            DocumentValidationError: If doc is None or invalid
        """
        if doc is None:
            raise DocumentValidationError("Can't store a null document")

        if self.schema.is_versioned and isinstance(doc, dict):
            doc = dict(doc)
            if doc.get("id") in (None, ""):
                doc["id"] = self.id
            doc["type"] = self.schema.type
            doc["version"] = self.schema.current_version

        errors = self.schema.errors(doc)
        if errors:
            raise DocumentValidationError(
                f"Can't store {self.schema.type} document, schema error: {'; '.join(errors)}",
                errors=errors,
            )
        return self.schema.serialize(doc)

    def postpare(self, member: Optional[str]) -> Any:
        """Decode a stored member and upgrade it to the latest version."""
        if member is None:
            return None
        return self.schema.upgrade(self.schema.deserialize(member))

    # CRUD

    async def add(self, doc: Any) -> Any:
        """Add one document, or every document of a list or tuple.

        Returns:
            doc, unchanged

        Raises:
            DocumentValidationError: If doc or any element is None or invalid
        """
        if isinstance(doc, (list, tuple)):
            return await self.add_many(doc)
        return await self.add_one(doc)

    async def add_one(self, doc: Any) -> Any:
        """Add a single document."""
        member = self.prepare(doc)
        await self.store.sadd(self.id, member)
        await self.refresh_expiry()
        return doc

    async def add_many(self, docs: Sequence[Any]) -> Sequence[Any]:
        """Add documents in one SADD. Nothing is written if any is invalid."""
        if docs is None:
            raise DocumentValidationError("Can't store a null document")
        members = [self.prepare(doc) for doc in docs]
        if not members:
            return docs
        await self.store.sadd(self.id, *members)
        await self.refresh_expiry()
        return docs

    async def set(self, doc: Any) -> Any:
        return await self.add(doc)

    async def members(self) -> List[Any]:
        """Every member, in no particular order."""
        members = await self.store.smembers(self.id)
        return [self.postpare(m) for m in members]

    async def get(self) -> List[Any]:
        return await self.members()

    async def randmember(self, n: int) -> List[Any]:
        """Up to n random members (negative n allows repeats)."""
        members = await self.store.srandmember(self.id, n)
        return [self.postpare(m) for m in members or []]

    async def rem(self, doc: Any) -> Any:
        """Remove doc; removing a non-member is a no-op."""
        await self.store.srem(self.id, self.prepare(doc))
        await self.refresh_expiry()
        return doc

    async def contains(self, doc: Any) -> bool:
        return bool(await self.store.sismember(self.id, self.prepare(doc)))

    async def has(self, doc: Any) -> bool:
        return await self.contains(doc)

    async def count(self) -> int:
        return int(await self.store.scard(self.id))

    async def modify(self, change_fn: ChangeFn) -> ModifyResult:
        """Apply a whole-set transformation.

        change_fn receives a deep copy of the current members and returns
        the members the set should hold; it may be a coroutine function.
        Only the difference is written back, with all SREM/SADD commands
        issued concurrently, and the TTL is refreshed once at the end.

        This is not atomic: writes made by others between the snapshot and
        the write-back may be lost or duplicated.

        Raises:
            DocumentValidationError: If a returned member is invalid
        """
        stored = list(await self.store.smembers(self.id))
        original = [self.postpare(m) for m in stored]
        # Compare at the latest version so members written by older
        # versions are not rewritten unless they actually changed
        current: Dict[str, List[str]] = {}
        for doc, raw in zip(original, stored):
            current.setdefault(self.prepare(doc), []).append(raw)

        changed = change_fn(copy.deepcopy(original))
        if inspect.isawaitable(changed):
            changed = await changed
        changed = list(changed)
        wanted = {self.prepare(doc) for doc in changed}

        to_remove = []
        for member, raws in current.items():
            if member not in wanted:
                to_remove.extend(raws)
            elif len(raws) > 1:
                # Several stored members upgrade to the same document; keep one
                kept = member if member in raws else raws[0]
                to_remove.extend(raw for raw in raws if raw != kept)
        to_add = [member for member in wanted if member not in current]

        operations = [self.store.srem(self.id, raw) for raw in to_remove]
        operations += [self.store.sadd(self.id, member) for member in to_add]
        await asyncio.gather(*operations)
        await self.refresh_expiry()

        logger.debug(
            "Collection modified",
            extra={"key": self.id, "added": len(to_add), "removed": len(to_remove)},
        )
        return ModifyResult(
            original=original,
            changed=changed,
            added=len(to_add),
            removed=len(to_remove),
        )

    async def delete(self) -> int:
        """Remove the whole set from the store."""
        return await self.store.delete(self.id)

    async def clear(self) -> int:
        return await self.delete()

    # Group operations

    def validate_set_ids(self, operands: Sequence[Operand]) -> List[str]:
        """Resolve operands to keys, refusing cross-slot combinations.

        Raw string keys are passed through unchecked.

        Raises:
            CrossSlotError: If a collection has another namespace or type
            TypeError: If an operand is neither a key nor a RedisSet
        """
        keys = []
        for operand in operands:
            if isinstance(operand, str):
                keys.append(operand)
            elif isinstance(operand, RedisSet):
                if operand.namespace != self.namespace:
                    raise CrossSlotError(
                        "Trying to perform a group operation (union/intersect/diff) on "
                        f"sets from different namespaces ('{self.namespace}' and "
                        f"'{operand.namespace}'); this would raise CROSSSLOT in a cluster",
                        expected=self.namespace,
                        actual=operand.namespace,
                    )
                if operand.schema.type != self.schema.type:
                    raise CrossSlotError(
                        "Trying to perform a group operation (union/intersect/diff) on "
                        f"sets of different schema types ('{self.schema.type}' and "
                        f"'{operand.schema.type}'); this would raise CROSSSLOT in a cluster",
                        expected=self.schema.type,
                        actual=operand.schema.type,
                    )
                keys.append(operand.id)
            else:
                raise TypeError(
                    f"Set operands must be keys or RedisSets, got {type(operand).__name__}"
                )
        return keys

    def _keys(self, operands: Sequence[Operand]) -> List[str]:
        return [self.id] + self.validate_set_ids(operands)

    async def _store_result(
        self, command: Callable[..., Awaitable[int]], dest: RedisSet, keys: List[str]
    ) -> RedisSet:
        await command(dest.id, *keys)
        await dest.refresh_expiry()
        logger.debug(
            "Stored set operation result",
            extra={"command": command.__name__, "dest": dest.id, "keys": keys},
        )
        return dest

    async def union(self, *operands: Operand) -> List[Any]:
        """Members of this set or any operand."""
        keys = self._keys(operands)
        return [self.postpare(m) for m in await self.store.sunion(*keys)]

    async def union_store(self, *operands: Operand) -> RedisSet:
        """Store the union in a new set with a generated key."""
        keys = self._keys(operands)
        return await self._store_result(self.store.sunionstore, self._spawn(), keys)

    async def union_store_at(self, id: str, *operands: Operand) -> RedisSet:
        """Store the union at a fixed key."""
        keys = self._keys(operands)
        return await self._store_result(self.store.sunionstore, self._spawn(id), keys)

    async def intersect(self, *operands: Operand) -> List[Any]:
        """Members of this set and every operand."""
        keys = self._keys(operands)
        return [self.postpare(m) for m in await self.store.sinter(*keys)]

    async def intersect_store(self, *operands: Operand) -> RedisSet:
        keys = self._keys(operands)
        return await self._store_result(self.store.sinterstore, self._spawn(), keys)

    async def intersect_store_at(self, id: str, *operands: Operand) -> RedisSet:
        keys = self._keys(operands)
        return await self._store_result(self.store.sinterstore, self._spawn(id), keys)

    async def diff(self, *operands: Operand) -> List[Any]:
        """Members of this set in none of the operands."""
        keys = self._keys(operands)
        return [self.postpare(m) for m in await self.store.sdiff(*keys)]

    async def diff_store(self, *operands: Operand) -> RedisSet:
        keys = self._keys(operands)
        return await self._store_result(self.store.sdiffstore, self._spawn(), keys)

    async def diff_store_at(self, id: str, *operands: Operand) -> RedisSet:
        keys = self._keys(operands)
        return await self._store_result(self.store.sdiffstore, self._spawn(id), keys)

    async def copy_to(self, id: str) -> RedisSet:
        """Copy this set to a fixed key."""
        return await self._store_result(self.store.sunionstore, self._spawn(id), [self.id])

    async def onion(self, *operands: Operand) -> RedisSet:
        raise UnsupportedOperationError("onion")
