"""
Write instructions and deletion reports.

Mutations translate caller intent into an ordered list of
:class:`WriteInstruction`; ``delete`` answers with an ordered list of
:class:`DeletionReport`, one per owned source.

Mutation functions may return plain dicts instead of instances::

    {"source": "tagLinks", "data": {"post": 1, "tag": 3}, "operation": "create"}

Tags:
    docspine, compose, mutations, writes

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from docspine.core.errors import MutationError
from docspine.core.protocols import MatchSpec, Record


class WriteOperation(str, Enum):
    """Adapter operation a write instruction performs."""

    UPDATE = "update"
    CREATE = "create"
    DELETE = "delete"


@dataclass(frozen=True)
class WriteInstruction:
    """
    One write against one source.

    Attributes:
        source: Declared source name
        data: Patch (update) or payload (create); ignored by delete
        operation: Update (default), Create or Delete
        match: Overrides the source's identifying match for update/delete
    """

    source: str
    data: Record = field(default_factory=dict)
    operation: WriteOperation = WriteOperation.UPDATE
    match: MatchSpec | None = None

    @classmethod
    def from_value(cls, value: Any) -> WriteInstruction:
        """Accept an instance or a dict with the same keys."""
        if isinstance(value, WriteInstruction):
            return value
        if not isinstance(value, Mapping) or "source" not in value:
            raise MutationError(
                f"Write instruction must be a WriteInstruction or a mapping with 'source', got {value!r}"
            )
        try:
            operation = WriteOperation(value.get("operation") or WriteOperation.UPDATE)
        except ValueError as e:
            raise MutationError(
                f"Unknown write operation {value.get('operation')!r} for source '{value['source']}'",
                cause=e,
            ) from e
        return cls(
            source=value["source"],
            data=dict(value.get("data") or {}),
            operation=operation,
            match=dict(value["match"]) if value.get("match") is not None else None,
        )


@dataclass(frozen=True)
class DeletionReport:
    """Records removed from one owned source."""

    source: str
    deleted: list[Record] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "deleted": list(self.deleted)}


__all__ = [
    "WriteOperation",
    "WriteInstruction",
    "DeletionReport",
]
