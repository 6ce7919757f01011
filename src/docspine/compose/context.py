"""
Source Context - immutable mapping passed step-to-step.

Every population step receives a ``SourceContext`` and its result is
added to a NEW context for the next step. The original is never mutated,
which is what lets a Document keep the exact context it was mapped from.

Each value is tagged with a :class:`ValueKind` so multiplicity stays
explicit after resolution: a ``RECORDS`` value is a flat list of records,
a ``NESTED`` value is a list of lists (nested fan-out), a ``SEED`` is
whatever the query's input function supplied.

Example:
    ctx = SourceContext.seed({"post": {"id": 1}})
    ctx["post"]["id"]                     # 1
    ctx = ctx.with_value("post", record, ValueKind.RECORD)
    ctx.kind_of("post")                   # ValueKind.RECORD

Tags:
    docspine, compose, context, immutable-snapshot

Doc-Types:
    api-reference
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any


class ValueKind(str, Enum):
    """Shape of a value held in a context."""

    SEED = "seed"          # From the query input function
    RECORD = "record"      # Single record
    RECORDS = "records"    # Ordered list of records
    NESTED = "nested"      # List of lists of records


class SourceContext(Mapping[str, Any]):
    """Immutable ordered mapping from source name to resolved value."""

    __slots__ = ("_values", "_kinds")

    def __init__(
        self,
        values: Mapping[str, Any] | None = None,
        kinds: Mapping[str, ValueKind] | None = None,
    ) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self._kinds: dict[str, ValueKind] = {
            name: (kinds or {}).get(name, ValueKind.SEED) for name in self._values
        }

    @classmethod
    def seed(cls, values: Mapping[str, Any] | None) -> SourceContext:
        """Create a context from an input function's seed values."""
        return cls(values or {})

    # =========================================================================
    # Mapping protocol (read-only)
    # =========================================================================

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def kind_of(self, name: str) -> ValueKind:
        return self._kinds[name]

    @property
    def kinds(self) -> dict[str, ValueKind]:
        return dict(self._kinds)

    # =========================================================================
    # Mutation (returns new context)
    # =========================================================================

    def with_value(self, name: str, value: Any, kind: ValueKind) -> SourceContext:
        """Return a new context with ``name`` bound to ``value``.

        Rebinding an existing name keeps its original position.
        """
        values = dict(self._values)
        kinds = dict(self._kinds)
        values[name] = value
        kinds[name] = kind
        return SourceContext(values, kinds)

    def copy(self) -> SourceContext:
        """Deep copy: records can be edited without touching this context."""
        return SourceContext(copy.deepcopy(self._values), self._kinds)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict copy of the values."""
        return dict(self._values)

    def __repr__(self) -> str:
        body = ", ".join(f"{name}:{kind.value}" for name, kind in self._kinds.items())
        return f"SourceContext({body})"


__all__ = ["ValueKind", "SourceContext"]
