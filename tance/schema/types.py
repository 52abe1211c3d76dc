"""
Schema version records for Tance.

A SchemaVersion pairs one JSON-schema definition with the function that
migrates a document from the previous version into it.

Invariants:
    - version is assigned by the owning Skeema, 1-based, never reused
    - SchemaVersion is immutable once created
    - upgrade_fn of version 1 is the identity

How to change safely:
    - Never edit a published definition; append a new version instead
    - Upgrade functions must be pure and tolerate documents that already
      contain the fields they add
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict

Document = Dict[str, Any]
UpgradeFn = Callable[[Document], Document]


def identity(doc: Document) -> Document:
    """Upgrade function for the first version of a chain."""
    return doc


@dataclass(frozen=True)
class SchemaVersion:
    """One version of a document schema.

    Attributes:
        version: 1-based position in the chain
        definition: JSON-schema object describing valid documents
        upgrade_fn: Maps a document of version - 1 to this version

    Example:
        >>> v1 = SchemaVersion(
        ...     version=1,
        ...     definition={"type": "object", "required": ["firstname"]},
        ...     upgrade_fn=identity,
        ... )
    """

    version: int
    definition: Dict[str, Any]
    upgrade_fn: UpgradeFn = identity

    def __post_init__(self) -> None:
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise TypeError(f"version must be an int, got {type(self.version).__name__}")
        if self.version < 1:
            raise ValueError(f"version must be >= 1, got {self.version}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (upgrade functions are not serializable)."""
        return {
            "version": self.version,
            "definition": self.definition,
        }
