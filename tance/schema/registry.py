"""
Schema Registry for Tance.

The SkeemaRegistry maps document type names to their schema chains.
It provides:
- Registration of schema chains by type name
- Lookup by type name
- Schema fingerprinting for consistency checks between deployments
- Freeze mechanism to stop chains from changing while serving

Invariants:
    - Registry is mutable during startup, frozen before serving
    - Freezing the registry freezes every registered chain
    - Type names are unique
    - Fingerprint changes when any definition or version count changes

How to change safely:
    - Register and fully build all chains before calling freeze_registry()
    - Compare fingerprints across processes sharing one store

Example:
    >>> registry = SkeemaRegistry()
    >>> registry.register(employees)
    >>> registry.freeze()
    'sha256:...'
    >>> registry.get("employee")
    Skeema(type='employee', current_version=3)
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import Dict, Iterator, Optional

from ..errors import TanceError
from .skeema import Skeema, canonical_json

logger = logging.getLogger(__name__)

# Global registry instance
_global_registry: Optional[SkeemaRegistry] = None
_registry_lock = threading.Lock()


class RegistryFrozenError(TanceError):
    """Raised when attempting to modify a frozen registry."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="REGISTRY_FROZEN")


class DuplicateRegistrationError(TanceError):
    """Raised when attempting to register a type name twice."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="DUPLICATE_REGISTRATION")


class SkeemaRegistry:
    """Registry of schema chains keyed by document type.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups are lock-free
        - Freeze is atomic and irreversible

    Attributes:
        frozen: Whether the registry is frozen
        fingerprint: SHA-256 hash of all chains (computed on freeze)
    """

    def __init__(self) -> None:
        """Initialize an empty, mutable registry."""
        self._schemas: Dict[str, Skeema] = {}
        self._frozen = False
        self._fingerprint: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._frozen

    @property
    def fingerprint(self) -> Optional[str]:
        """Schema fingerprint (available after freeze)."""
        return self._fingerprint

    def register(self, schema: Skeema) -> None:
        """Register a schema chain under its type name.

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateRegistrationError: If the type name is taken
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register schema '{schema.type}': registry is frozen"
                )

            if schema.type in self._schemas:
                existing = self._schemas[schema.type]
                raise DuplicateRegistrationError(
                    f"Schema type '{schema.type}' already registered "
                    f"at version {existing.current_version}"
                )

            self._schemas[schema.type] = schema
            logger.debug(
                f"Registered schema: {schema.type} (version={schema.current_version})"
            )

    def get(self, type_name: str) -> Optional[Skeema]:
        """Get a schema chain by type name, None if unknown."""
        return self._schemas.get(type_name)

    def schemas(self) -> Iterator[Skeema]:
        """Iterate over all registered chains."""
        yield from self._schemas.values()

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def freeze(self) -> str:
        """Freeze the registry and every registered chain.

        Returns:
            Schema fingerprint string

        Raises:
            RegistryFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")

            for schema in self._schemas.values():
                schema.freeze()
            self._fingerprint = self._compute_fingerprint()
            self._frozen = True
            logger.info(
                f"Schema registry frozen with {len(self._schemas)} schemas, "
                f"fingerprint={self._fingerprint}"
            )
            return self._fingerprint

    def _compute_fingerprint(self) -> str:
        """Compute SHA-256 fingerprint over the canonical JSON of all chains."""
        canonical = canonical_json(self.to_dict())
        hash_bytes = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"sha256:{hash_bytes}"

    def to_dict(self) -> dict:
        """Convert registry to dictionary, sorted by type name."""
        return {
            "schemas": [
                self._schemas[name].to_dict() for name in sorted(self._schemas.keys())
            ],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert registry to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


def get_registry() -> SkeemaRegistry:
    """Get the global schema registry, creating it on first use."""
    global _global_registry
    with _registry_lock:
        if _global_registry is None:
            _global_registry = SkeemaRegistry()
        return _global_registry


def register_schema(schema: Skeema) -> None:
    """Register a schema chain in the global registry."""
    get_registry().register(schema)


def freeze_registry() -> str:
    """Freeze the global registry.

    Returns:
        Schema fingerprint

    Raises:
        RegistryFrozenError: If already frozen
    """
    return get_registry().freeze()


def reset_registry() -> None:
    """Reset the global registry (for testing only)."""
    global _global_registry
    with _registry_lock:
        _global_registry = None
