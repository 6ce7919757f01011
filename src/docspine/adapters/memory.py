"""
In-memory source adapter.

Manifesto:
    Test suites and single-process tools need a zero-infrastructure store
    that honours the full adapter contract, including id assignment and
    snapshot isolation, so engine behaviour can be exercised end to end.

``MemoryStore`` holds named collections of records behind an
``asyncio.Lock``. ``MemoryAdapter`` binds one collection of a store to the
:class:`~docspine.core.protocols.SourceAdapter` contract. Several adapters
may share a store (e.g. ``post`` and ``posts`` over the same collection).

Records handed in and out are deep-copied: callers can never mutate stored
state through a returned record.

Tags:
    docspine, adapters, in-memory, asyncio, testing

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from typing import Any

from docspine.core.logging import get_logger
from docspine.core.protocols import MatchSpec, Record
from docspine.core.settings import get_settings

__all__ = ["MemoryStore", "MemoryAdapter", "matches"]

logger = get_logger(__name__)


def matches(record: Mapping[str, Any], match: Mapping[str, Any]) -> bool:
    """Partial-field equality: every key in ``match`` equals the record's value."""
    return all(key in record and record[key] == value for key, value in match.items())


class MemoryStore:
    """Named collections of records shared by one or more adapters.

    Example::

        store = MemoryStore({"posts": [{"id": 1, "title": "Post 1"}]})
        posts = MemoryAdapter(store, "posts")
        await posts.fetch({"id": 1})
    """

    def __init__(self, collections: Mapping[str, Iterable[Record]] | None = None) -> None:
        self._collections: dict[str, list[Record]] = {
            name: [copy.deepcopy(dict(record)) for record in records]
            for name, records in (collections or {}).items()
        }
        self._lock = asyncio.Lock()

    def collection(self, name: str) -> list[Record]:
        """Return a deep copy of a collection's current records."""
        return copy.deepcopy(self._collections.get(name, []))

    @property
    def collection_names(self) -> list[str]:
        return sorted(self._collections)

    @asynccontextmanager
    async def locked(self, name: str) -> AsyncIterator[list[Record]]:
        """Hold the store lock and yield the live record list of ``name``.

        The collection is created empty on first access. Callers must not
        keep the list after the block exits.
        """
        async with self._lock:
            yield self._collections.setdefault(name, [])


class MemoryAdapter:
    """
    Source adapter over one collection of a :class:`MemoryStore`.

    Args:
        store: Backing store
        collection: Collection name inside the store
        id_field: Identifier field; defaults to ``settings.id_field``

    ``create`` assigns ``max(existing integer ids) + 1`` when the payload
    has no identifier.
    """

    def __init__(self, store: MemoryStore, collection: str, id_field: str | None = None) -> None:
        self.store = store
        self.collection = collection
        self.id_field = id_field or get_settings().id_field

    def __repr__(self) -> str:
        return f"MemoryAdapter(collection={self.collection!r}, id_field={self.id_field!r})"

    async def fetch(self, match: MatchSpec) -> list[Record]:
        async with self.store.locked(self.collection) as rows:
            found = [copy.deepcopy(row) for row in rows if matches(row, match)]
        logger.debug("memory_fetch", collection=self.collection, match=match, count=len(found))
        return found

    async def create(self, payload: Record) -> Record:
        async with self.store.locked(self.collection) as rows:
            record = copy.deepcopy(dict(payload))
            if record.get(self.id_field) is None:
                record[self.id_field] = self._next_id(rows)
            rows.append(record)
            created = copy.deepcopy(record)
        logger.debug("memory_create", collection=self.collection, id=created[self.id_field])
        return created

    async def update(self, match: MatchSpec, patch: Record) -> list[Record]:
        async with self.store.locked(self.collection) as rows:
            updated = []
            for row in rows:
                if matches(row, match):
                    row.update(copy.deepcopy(dict(patch)))
                    updated.append(copy.deepcopy(row))
        logger.debug("memory_update", collection=self.collection, match=match, count=len(updated))
        return updated

    async def delete(self, match: MatchSpec) -> list[Record]:
        async with self.store.locked(self.collection) as rows:
            removed = [row for row in rows if matches(row, match)]
            rows[:] = [row for row in rows if not matches(row, match)]
        logger.debug("memory_delete", collection=self.collection, match=match, count=len(removed))
        return removed

    def _next_id(self, rows: list[Record]) -> int:
        ids = [
            row[self.id_field]
            for row in rows
            if isinstance(row.get(self.id_field), int) and not isinstance(row.get(self.id_field), bool)
        ]
        return max(ids, default=0) + 1
