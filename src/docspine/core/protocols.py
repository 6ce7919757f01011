"""
Canonical protocol definitions for docspine.

The engine never imports a concrete store. Every source is bound to an
object satisfying :class:`SourceAdapter`; the in-memory adapter in
:mod:`docspine.adapters.memory` is one implementation, a database or HTTP
client is another.

Architecture:
    ::

        SourceAdapter (async)
        ┌────────────────────────────────────────────────────────────┐
        │ fetch(match)          → list[Record]   (empty if none)     │
        │ create(payload)       → Record         (id assigned)       │
        │ update(match, patch)  → list[Record]   (after merge)       │
        │ delete(match)         → list[Record]   (exactly removed)   │
        └────────────────────────────────────────────────────────────┘

    ``match`` is a partial-field-equality predicate such as ``{"id": 1}``
    or ``{"author": 1}``; it may match zero, one or many records.

Guardrails:
    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts — implementations go in adapters

    ❌ DON'T: Handle timeouts or cancellation in the engine
    ✅ DO: Leave them to the adapter layer

Tags:
    protocol, adapter, async, docspine, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

Record = dict[str, Any]
MatchSpec = dict[str, Any]


@runtime_checkable
class SourceAdapter(Protocol):
    """Per-collection CRUD contract required by the engine."""

    async def fetch(self, match: MatchSpec) -> list[Record]:
        """Return every record matching ``match`` in natural order."""
        ...

    async def create(self, payload: Record) -> Record:
        """Insert ``payload`` and return the stored record."""
        ...

    async def update(self, match: MatchSpec, patch: Record) -> list[Record]:
        """Merge ``patch`` into matching records and return them."""
        ...

    async def delete(self, match: MatchSpec) -> list[Record]:
        """Remove matching records and return exactly those removed."""
        ...


__all__ = [
    "Record",
    "MatchSpec",
    "SourceAdapter",
]
