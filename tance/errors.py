"""
Error types for Tance.

This module defines all exception types raised by the document layer:
- TanceError: Base exception
- DocumentValidationError: Document failed schema validation
- CrossSlotError: Group operation across routing groups
- MigrationError: Document could not be upgraded along a schema chain
- UnsupportedOperationError: Deliberately unimplemented operation
- SchemaDefinitionError / SchemaFrozenError: Schema chain misconfiguration
- StoreConnectionError: Store unreachable at connect time

Invariants:
    - All errors inherit from TanceError
    - Errors include context for debugging in ``details``
    - Store transport errors are never wrapped
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class TanceError(Exception):
    """Base exception for all Tance errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "TANCE_ERROR"
        self.details = details or {}


class DocumentValidationError(TanceError):
    """A document could not be stored or read.

    Raised when:
    - A collection is created without a store
    - A null document is added
    - A document fails schema validation
    - A stored member cannot be decoded
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"errors": errors or []},
        )
        self.errors = errors or []


class CrossSlotError(TanceError):
    """Group operation spans different routing groups.

    The store refuses multi-key commands whose keys hash to different
    slots, so union/intersect/diff are only allowed between collections
    sharing both namespace and schema type.
    """

    def __init__(
        self,
        message: str,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CROSSSLOT",
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class MigrationError(TanceError):
    """Document could not be upgraded to the latest schema version.

    Raised when:
    - The document carries no version, or one out of range
    - An upgrade step produced a document invalid for its target version
    """

    def __init__(
        self,
        message: str,
        from_version: Any = None,
        to_version: Optional[int] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="MIGRATION_ERROR",
            details={
                "from_version": from_version,
                "to_version": to_version,
                "errors": errors or [],
            },
        )
        self.from_version = from_version
        self.to_version = to_version
        self.errors = errors or []


class UnsupportedOperationError(TanceError, NotImplementedError):
    """Operation exists on the interface but is not implemented."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Operation '{operation}' is not supported",
            code="UNSUPPORTED_OPERATION",
            details={"operation": operation},
        )
        self.operation = operation


class SchemaDefinitionError(TanceError):
    """A schema version definition is not a valid JSON schema."""

    def __init__(self, message: str, type_name: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="SCHEMA_DEFINITION_ERROR",
            details={"type": type_name},
        )
        self.type_name = type_name


class SchemaFrozenError(TanceError):
    """Schema chain is frozen and cannot gain new versions."""

    def __init__(self, type_name: str) -> None:
        super().__init__(
            f"Cannot add version to schema '{type_name}': schema is frozen",
            code="SCHEMA_FROZEN",
            details={"type": type_name},
        )
        self.type_name = type_name


class StoreConnectionError(TanceError):
    """Failed to reach the set store.

    Raised when:
    - The store does not answer PING on connect
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONNECTION_ERROR",
            details={"address": address},
        )
        self.address = address
