"""
Versioned document schemas for Tance.

A Skeema is an ordered chain of SchemaVersions. It validates documents
against the version they declare, migrates them forward to the latest
version, and owns the canonical text encoding used for set members.

StringSchema is the trivial schema used by collections of plain strings.

Invariants:
    - Versions are numbered 1, 2, 3... in registration order
    - The chain is append-only and can be frozen
    - upgrade() never returns a document that failed validation
    - serialize() is canonical: equal documents produce equal text

How to change safely:
    - Add a version with an upgrade function rather than editing one
    - Keep serialize() byte-stable; stored members are compared as text
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from ..errors import (
    DocumentValidationError,
    MigrationError,
    SchemaDefinitionError,
    SchemaFrozenError,
)
from .types import Document, SchemaVersion, UpgradeFn, identity

logger = logging.getLogger(__name__)


def canonical_json(value: Any) -> str:
    """Encode a value as canonical JSON text."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _format_error(error: Any) -> str:
    path = ".".join(str(part) for part in error.absolute_path) or "<root>"
    return f"{path}: {error.message}"


class Skeema:
    """Ordered chain of schema versions for one document type.

    Attributes:
        type: Document kind, used in collection keys
        versions: Registered versions, oldest first
        current_version: Number of the latest version (0 when empty)

    Example:
        >>> employees = Skeema("employee")
        >>> employees.add_version({"type": "object", "required": ["firstname"]})
        >>> employees.add_version(v2_definition, lambda doc: {**doc, "salary": 30000})
        >>> employees.upgrade({"version": 1, "firstname": "Charles"})
        {'version': 2, 'firstname': 'Charles', 'salary': 30000}
    """

    is_versioned = True

    def __init__(self, type: str = "document") -> None:
        if not type:
            raise ValueError("Schema type must be a non-empty string")
        self.type = type
        self._versions: List[SchemaVersion] = []
        self._validators: List[Draft7Validator] = []
        self._frozen = False

    def __repr__(self) -> str:
        return f"Skeema(type={self.type!r}, current_version={self.current_version})"

    @property
    def versions(self) -> Tuple[SchemaVersion, ...]:
        """Registered versions, oldest first."""
        return tuple(self._versions)

    @property
    def current_version(self) -> int:
        """Number of the latest version."""
        return len(self._versions)

    @property
    def frozen(self) -> bool:
        """Whether the chain still accepts new versions."""
        return self._frozen

    def freeze(self) -> None:
        """Stop accepting new versions."""
        self._frozen = True

    def add_version(
        self,
        definition: Dict[str, Any],
        upgrade_fn: UpgradeFn = identity,
    ) -> SchemaVersion:
        """Append a new version to the chain.

        Args:
            definition: JSON-schema object for the new version
            upgrade_fn: Maps a document of the previous version to this one

        Returns:
            The registered SchemaVersion

        Raises:
            SchemaFrozenError: If the chain is frozen
            SchemaDefinitionError: If definition is not a valid JSON schema
        """
        if self._frozen:
            raise SchemaFrozenError(self.type)

        try:
            Draft7Validator.check_schema(definition)
        except SchemaError as e:
            raise SchemaDefinitionError(
                f"Invalid definition for schema '{self.type}' "
                f"version {self.current_version + 1}: {e.message}",
                type_name=self.type,
            ) from e

        version = SchemaVersion(
            version=self.current_version + 1,
            definition=definition,
            upgrade_fn=upgrade_fn,
        )
        self._versions.append(version)
        self._validators.append(Draft7Validator(definition))
        logger.debug(f"Registered schema version: {self.type} v{version.version}")
        return version

    def get_version(self, version: int) -> Optional[SchemaVersion]:
        """Get a version by number, None if out of range."""
        if not _is_version_number(version) or not 1 <= version <= self.current_version:
            return None
        return self._versions[version - 1]

    def is_valid(self, doc: Any) -> bool:
        """Whether doc validates against the version it declares."""
        return not self.errors(doc)

    def errors(self, doc: Any) -> List[str]:
        """Describe why doc fails validation.

        The version is taken from ``doc["version"]`` and defaults to the
        latest one.

        Returns:
            Human-readable messages, empty when doc is valid
        """
        if not self._versions:
            return [f"Schema '{self.type}' has no versions"]
        if not isinstance(doc, Mapping):
            return [f"<root>: expected an object, got {type(doc).__name__}"]

        version = doc.get("version", self.current_version)
        if self.get_version(version) is None:
            return [
                f"version: {version!r} is not a version of schema '{self.type}' "
                f"(1..{self.current_version})"
            ]

        validator = self._validators[version - 1]
        return [
            _format_error(error)
            for error in sorted(
                validator.iter_errors(doc),
                key=lambda e: ([str(part) for part in e.absolute_path], e.message),
            )
        ]

    def upgrade(self, doc: Document) -> Document:
        """Migrate doc to the latest version.

        Each intermediate upgrade function receives a copy of the previous
        result, and every result is stamped with its version and validated.

        Args:
            doc: Document declaring its version

        Returns:
            New document at current_version (doc itself is not modified)

        Raises:
            MigrationError: If the version is missing or out of range, or an
                upgrade step produced an invalid document
        """
        version = doc.get("version") if isinstance(doc, Mapping) else None
        if self.get_version(version) is None:
            raise MigrationError(
                f"Cannot upgrade {self.type} document with version {version!r}; "
                f"expected 1..{self.current_version}",
                from_version=version,
                to_version=self.current_version,
            )

        upgraded = copy.deepcopy(dict(doc))
        for target in self._versions[version:]:
            upgraded = target.upgrade_fn(copy.deepcopy(upgraded))
            if not isinstance(upgraded, Mapping):
                raise MigrationError(
                    f"Upgrading {self.type} document to version {target.version} "
                    f"returned {type(upgraded).__name__}, expected an object",
                    from_version=version,
                    to_version=target.version,
                    errors=[f"<root>: expected an object, got {type(upgraded).__name__}"],
                )
            upgraded = dict(upgraded)
            upgraded["version"] = target.version
            errors = self.errors(upgraded)
            if errors:
                raise MigrationError(
                    f"Upgrading {self.type} document from version {version} "
                    f"produced an invalid version {target.version} document: "
                    f"{'; '.join(errors)}",
                    from_version=version,
                    to_version=target.version,
                    errors=errors,
                )
        return upgraded

    def serialize(self, doc: Document) -> str:
        """Encode doc as canonical JSON."""
        return canonical_json(doc)

    def deserialize(self, text: str) -> Document:
        """Decode a stored member.

        Raises:
            DocumentValidationError: If text is not a JSON object
        """
        try:
            doc = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise DocumentValidationError(
                f"Cannot decode {self.type} document: {e}", errors=[str(e)]
            ) from e
        if not isinstance(doc, dict):
            raise DocumentValidationError(
                f"Cannot decode {self.type} document: expected an object, "
                f"got {type(doc).__name__}"
            )
        return doc

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type,
            "current_version": self.current_version,
            "versions": [v.to_dict() for v in self._versions],
        }


class StringSchema:
    """Schema for collections of plain, unversioned strings."""

    is_versioned = False
    type = "string"
    current_version = 0

    def __repr__(self) -> str:
        return "StringSchema()"

    def is_valid(self, doc: Any) -> bool:
        return isinstance(doc, str)

    def errors(self, doc: Any) -> List[str]:
        if isinstance(doc, str):
            return []
        return [f"<root>: expected a string, got {type(doc).__name__}"]

    def upgrade(self, doc: str) -> str:
        return doc

    def serialize(self, doc: str) -> str:
        return doc

    def deserialize(self, text: str) -> str:
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "current_version": 0, "versions": []}


def _is_version_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
