"""
Document - immutable materialized result of a query.

A Document is a snapshot: the mapped view (``data``), the raw source
records it was mapped from, and enough context (model, query, arguments)
to mutate or delete it later. ``mutate`` and ``delete`` never change the
instance they are called on; ``mutate`` returns a new Document built by
re-running the owning query.

Example:
    doc = await Post.get(1)
    doc.data["title"]                           # mapped view
    doc.sources["post"]                         # raw record, internal state
    doc2 = await doc.mutate("updateTitle", "Hello")
    reports = await doc2.delete()

Tags:
    docspine, compose, document, immutable-snapshot

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from docspine.compose.context import SourceContext
from docspine.compose.matching import Match
from docspine.core.errors import DocspineError

if TYPE_CHECKING:
    from docspine.compose.model import CompositeModel
    from docspine.compose.writes import DeletionReport


@dataclass(frozen=True)
class Document:
    """
    Immutable materialized document.

    Attributes:
        data: Output of the model's mapping function (the public shape)
        sources: Resolved source values the view was mapped from
        matches: Identifying match per resolved source
        model: Owning composite model
        query_name: Query that produced this document
        args: Arguments the query was run with
        canonical: False for rows of a multiple query; such documents are
            re-materialized through the default query before writes
    """

    data: Any
    sources: SourceContext
    matches: Mapping[str, Match] = field(default_factory=dict)
    model: CompositeModel | None = field(default=None, repr=False, compare=False)
    query_name: str = ""
    args: tuple[Any, ...] = ()
    canonical: bool = True

    async def mutate(self, name: str, *args: Any) -> Document:
        """Apply the named mutation and return the re-resolved Document."""
        return await self._model().apply_mutation(self, name, args)

    async def delete(self) -> list[DeletionReport]:
        """Delete owned sources' records in ownership order."""
        return await self._model().delete_document(self)

    def _model(self) -> CompositeModel:
        if self.model is None:
            raise DocspineError("Document is detached from its model")
        return self.model


__all__ = ["Document"]
