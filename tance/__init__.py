"""
Tance - typed, schema-versioned documents in Redis sets.

This package layers JSON-schema validated documents over Redis sets:
- Skeema: ordered schema versions with upgrade functions
- RedisSet: namespaced collection with CRUD and set algebra
- Tance: client owning the store connection and schema registry

Example:
    >>> from tance import Skeema, Tance, TanceConfig
    >>>
    >>> employees = Skeema("employee")
    >>> employees.add_version({
    ...     "type": "object",
    ...     "properties": {"firstname": {"type": "string"}},
    ...     "required": ["firstname"],
    ... })
    >>>
    >>> async with Tance.from_config(TanceConfig.from_env()) as tance:
    ...     staff = tance.set(employees, namespace="acme")
    ...     await staff.add({"firstname": "Charles"})
    ...     print(await staff.members())

Invariants:
    - Stored documents are validated on write and upgraded on read
    - Collections combine only within one namespace and schema type
    - Collection keys are ``set-{<type>-<namespace>}-<uuid>``

Version: 1.0.0
"""

__version__ = "1.0.0"

from .client import Tance
from .config import (
    CollectionConfig,
    ObservabilityConfig,
    RedisConfig,
    StoreBackend,
    TanceConfig,
)
from .errors import (
    CrossSlotError,
    DocumentValidationError,
    MigrationError,
    SchemaDefinitionError,
    SchemaFrozenError,
    StoreConnectionError,
    TanceError,
    UnsupportedOperationError,
)
from .observability import setup_logging
from .primitives import ModifyResult, RedisSet
from .schema import (
    SchemaVersion,
    Skeema,
    SkeemaRegistry,
    StringSchema,
    freeze_registry,
    get_registry,
    register_schema,
)
from .store import InMemorySetStore, SetStore, create_set_store

__all__ = [
    # Version
    "__version__",
    # Client
    "Tance",
    # Schemas
    "Skeema",
    "SchemaVersion",
    "StringSchema",
    "SkeemaRegistry",
    "get_registry",
    "register_schema",
    "freeze_registry",
    # Collections
    "RedisSet",
    "ModifyResult",
    # Stores
    "SetStore",
    "InMemorySetStore",
    "create_set_store",
    # Configuration
    "TanceConfig",
    "RedisConfig",
    "CollectionConfig",
    "ObservabilityConfig",
    "StoreBackend",
    "setup_logging",
    # Errors
    "TanceError",
    "DocumentValidationError",
    "CrossSlotError",
    "MigrationError",
    "UnsupportedOperationError",
    "SchemaDefinitionError",
    "SchemaFrozenError",
    "StoreConnectionError",
]
