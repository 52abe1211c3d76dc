"""
Integration tests for group operations between collections.

Tests cover:
- union/intersect/diff and their store variants
- Routing group checks before any store command
- copy_to and onion
"""

import pytest
import pytest_asyncio

from tance.errors import CrossSlotError, UnsupportedOperationError
from tance.primitives.redis_set import RedisSet
from tance.schema.skeema import Skeema
from tance.store.memory import InMemoryStoreError, routing_group

from tests.conftest import EMPLOYEE_V1


def names(docs):
    return sorted(doc["fullname"] for doc in docs)


@pytest.fixture
def make_set(store, employee_schema):
    def make(namespace="ns1", schema=None, **kwargs):
        return RedisSet(store, schema=schema or employee_schema, namespace=namespace, **kwargs)

    return make


@pytest_asyncio.fixture
async def teams(make_set, employee):
    """Two overlapping teams; shared members carry the same id."""
    charles = employee("Charles", "Huckbreimer", id="emp-1")
    ada = employee("Ada", "Byron", id="emp-2")
    alan = employee("Alan", "Turing", id="emp-3")

    backend = make_set()
    frontend = make_set()
    await backend.add([charles, ada])
    await frontend.add([ada, alan])
    return backend, frontend


class TestReadOperations:
    """Tests for union, intersect and diff."""

    @pytest.mark.asyncio
    async def test_union(self, teams):
        backend, frontend = teams

        result = await backend.union(frontend)

        assert names(result) == ["Ada Byron", "Alan Turing", "Charles Huckbreimer"]

    @pytest.mark.asyncio
    async def test_intersect(self, teams):
        backend, frontend = teams

        assert names(await backend.intersect(frontend)) == ["Ada Byron"]

    @pytest.mark.asyncio
    async def test_diff(self, teams):
        backend, frontend = teams

        assert names(await backend.diff(frontend)) == ["Charles Huckbreimer"]
        assert names(await frontend.diff(backend)) == ["Alan Turing"]

    @pytest.mark.asyncio
    async def test_several_operands(self, teams, make_set, employee):
        backend, frontend = teams
        ops = make_set()
        await ops.add(employee("Grace", "Hopper", id="emp-4"))

        result = await backend.union(frontend, ops)

        assert len(result) == 4

    @pytest.mark.asyncio
    async def test_no_operands(self, teams):
        backend, _ = teams

        assert names(await backend.union()) == ["Ada Byron", "Charles Huckbreimer"]

    @pytest.mark.asyncio
    async def test_raw_key_operand(self, teams):
        backend, frontend = teams

        assert names(await backend.intersect(frontend.id)) == ["Ada Byron"]

    @pytest.mark.asyncio
    async def test_raw_keys_are_not_checked(self, teams):
        """Raw keys bypass the local check; the store still rejects them."""
        backend, _ = teams

        with pytest.raises(InMemoryStoreError, match="CROSSSLOT"):
            await backend.union("set-{employee-ns2}-elsewhere")

    @pytest.mark.asyncio
    async def test_results_upgraded(self, teams, store):
        backend, frontend = teams
        await store.sadd(
            frontend.id, '{"firstname":"Old","lastname":"Timer","version":1}'
        )

        result = await backend.union(frontend)

        old = [doc for doc in result if doc["firstname"] == "Old"]
        assert old[0]["version"] == 3
        assert old[0]["fullname"] == "Old Timer"


class TestStoreOperations:
    """Tests for the *_store and *_store_at variants."""

    @pytest.mark.asyncio
    async def test_union_store(self, teams):
        backend, frontend = teams

        result = await backend.union_store(frontend)

        assert isinstance(result, RedisSet)
        assert result.id not in (backend.id, frontend.id)
        assert routing_group(result.id) == routing_group(backend.id)
        assert result.schema is backend.schema
        assert result.namespace == "ns1"
        assert await result.count() == 3

    @pytest.mark.asyncio
    async def test_intersect_store(self, teams):
        backend, frontend = teams

        result = await backend.intersect_store(frontend)

        assert names(await result.members()) == ["Ada Byron"]

    @pytest.mark.asyncio
    async def test_diff_store(self, teams):
        backend, frontend = teams

        result = await backend.diff_store(frontend)

        assert names(await result.members()) == ["Charles Huckbreimer"]

    @pytest.mark.asyncio
    async def test_store_issues_one_store_command(self, teams, store):
        backend, frontend = teams
        store.reset_calls()

        result = await backend.intersect_store(frontend)

        assert store.calls == [("sinterstore", (result.id, backend.id, frontend.id))]

    @pytest.mark.asyncio
    async def test_store_at_fixed_key(self, teams):
        backend, frontend = teams
        dest = "set-{employee-ns1}-everyone"

        result = await backend.union_store_at(dest, frontend)

        assert result.id == dest
        assert await result.count() == 3

    @pytest.mark.asyncio
    async def test_store_at_overwrites(self, teams, store):
        backend, frontend = teams
        dest = "set-{employee-ns1}-shared"
        await store.sadd(dest, "stale")

        await backend.intersect_store_at(dest, frontend)
        result = await backend.diff_store_at(dest, frontend)

        assert names(await result.members()) == ["Charles Huckbreimer"]

    @pytest.mark.asyncio
    async def test_store_sets_destination_ttl(self, make_set, employee, store):
        left = make_set(expiry_seconds=60)
        right = make_set(expiry_seconds=60)
        await left.add(employee("Charles", "Huckbreimer"))
        await right.add(employee("Ada", "Byron"))

        result = await left.union_store(right)

        assert result.expiry_seconds == 60
        assert await store.ttl(result.id) == 60

    @pytest.mark.asyncio
    async def test_copy_to(self, teams):
        backend, _ = teams
        dest = "set-{employee-ns1}-backup"

        copy = await backend.copy_to(dest)

        assert copy.id == dest
        assert names(await copy.members()) == names(await backend.members())


OPERATIONS = [
    ("union", lambda s, o: s.union(o)),
    ("union_store", lambda s, o: s.union_store(o)),
    ("union_store_at", lambda s, o: s.union_store_at("set-{employee-ns1}-dest", o)),
    ("intersect", lambda s, o: s.intersect(o)),
    ("intersect_store", lambda s, o: s.intersect_store(o)),
    ("intersect_store_at", lambda s, o: s.intersect_store_at("set-{employee-ns1}-dest", o)),
    ("diff", lambda s, o: s.diff(o)),
    ("diff_store", lambda s, o: s.diff_store(o)),
    ("diff_store_at", lambda s, o: s.diff_store_at("set-{employee-ns1}-dest", o)),
]


class TestRoutingChecks:
    """Tests for validate_set_ids and cross-slot refusal."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,operation", OPERATIONS, ids=[n for n, _ in OPERATIONS])
    async def test_namespace_mismatch(self, make_set, store, name, operation):
        ours = make_set("ns1")
        theirs = make_set("ns2")

        with pytest.raises(CrossSlotError) as exc_info:
            await operation(ours, theirs)

        assert "'ns1' and 'ns2'" in str(exc_info.value)
        assert exc_info.value.code == "CROSSSLOT"
        assert store.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,operation", OPERATIONS, ids=[n for n, _ in OPERATIONS])
    async def test_type_mismatch(self, make_set, store, name, operation):
        managers = Skeema("manager")
        managers.add_version(EMPLOYEE_V1)
        ours = make_set("ns1")
        theirs = make_set("ns1", schema=managers)

        with pytest.raises(CrossSlotError) as exc_info:
            await operation(ours, theirs)

        assert exc_info.value.expected == "employee"
        assert exc_info.value.actual == "manager"
        assert store.calls == []

    def test_validate_set_ids(self, make_set):
        ours = make_set()
        other = make_set()

        assert ours.validate_set_ids([other, "raw-key"]) == [other.id, "raw-key"]

    def test_bad_operand_type(self, make_set):
        with pytest.raises(TypeError, match="got int"):
            make_set().validate_set_ids([42])


class TestOnion:
    """onion() is never supported."""

    @pytest.mark.asyncio
    async def test_onion_raises(self, make_set, store):
        ours = make_set()

        with pytest.raises(UnsupportedOperationError, match="'onion'"):
            await ours.onion(make_set())

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_onion_is_not_implemented(self, make_set):
        with pytest.raises(NotImplementedError):
            await make_set().onion()
