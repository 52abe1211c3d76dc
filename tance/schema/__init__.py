"""
Schema module for Tance.

This module provides the document type system:
- Versioned schema chains (Skeema) with validation and upgrades
- StringSchema for collections of plain strings
- Schema registry keyed by document type

Invariants:
    - Version numbers are immutable once assigned
    - Stored documents are always read back at the latest version
    - All chains should be registered and frozen before serving

How to change safely:
    - Append versions with upgrade functions; never edit old definitions
    - Compare registry fingerprints between deployments sharing a store
"""

from .registry import (
    DuplicateRegistrationError,
    RegistryFrozenError,
    SkeemaRegistry,
    freeze_registry,
    get_registry,
    register_schema,
)
from .skeema import Skeema, StringSchema, canonical_json
from .types import Document, SchemaVersion, identity

__all__ = [
    # Types
    "Document",
    "SchemaVersion",
    "identity",
    # Schemas
    "Skeema",
    "StringSchema",
    "canonical_json",
    # Registry
    "SkeemaRegistry",
    "get_registry",
    "register_schema",
    "freeze_registry",
    "RegistryFrozenError",
    "DuplicateRegistrationError",
]
