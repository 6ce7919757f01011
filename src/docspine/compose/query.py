"""Query declarations — ordered population pipelines.

WHY
───
A query says how to get from caller arguments to a fully populated
context: an input function seeds the context, then each population step
computes a match for one source from what earlier steps resolved.

ARCHITECTURE
────────────
::

    Query.create(multiple=False, rows=None)
      .input(input_fn, id_extractor=None)   ── args → seed values
      .populate(source, param_fn)           ── appended step, order kept
      .map(post_map_fn)                     ── context → row contexts

    Every builder call returns a NEW frozen Query.

Example::

    by_author = (
        Query.create(multiple=True)
        .input(lambda author_id: {"author": {"id": author_id}})
        .populate("posts", lambda ctx: {"author": ctx["author"]["id"]})
        .populate("author", lambda ctx: {"id": ctx["author"]["id"]})
        .map(lambda ctx: [{"post": p, "author": ctx["author"]} for p in ctx["posts"]])
    )
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from docspine.compose.context import SourceContext

InputFn = Callable[..., Mapping[str, Any]]
ParamFn = Callable[[SourceContext], Any]
IdExtractorFn = Callable[[Mapping[str, Any]], Any]
PostMapFn = Callable[[SourceContext], Sequence[Mapping[str, Any]]]


def _identity_input(*args: Any) -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class PopulationStep:
    """One stage of a query pipeline."""

    source: str
    param_fn: ParamFn


@dataclass(frozen=True)
class Query:
    """
    Immutable query declaration.

    Attributes:
        multiple: Yields zero-or-more documents instead of exactly one
        input_fn: Caller arguments → seed values
        id_extractor: Resolved context → primary identifier (used by create)
        steps: Population steps in declaration order
        post_map_fn: Regroups a multiple query's context into row contexts; a
            yielded SourceContext keeps its kinds, plain mappings are seeds
        rows: Rows source of a multiple query without ``post_map_fn``
    """

    multiple: bool = False
    input_fn: InputFn = _identity_input
    id_extractor: IdExtractorFn | None = None
    steps: tuple[PopulationStep, ...] = field(default_factory=tuple)
    post_map_fn: PostMapFn | None = None
    rows: str | None = None

    @classmethod
    def create(cls, multiple: bool = False, rows: str | None = None) -> Query:
        return cls(multiple=multiple, rows=rows)

    def input(self, fn: InputFn, id_extractor: IdExtractorFn | None = None) -> Query:
        return replace(self, input_fn=fn, id_extractor=id_extractor)

    def populate(self, source: str, param_fn: ParamFn) -> Query:
        return replace(self, steps=self.steps + (PopulationStep(source, param_fn),))

    def map(self, post_map_fn: PostMapFn) -> Query:
        return replace(self, post_map_fn=post_map_fn)

    @property
    def sources(self) -> list[str]:
        """Target sources in step order."""
        return [step.source for step in self.steps]

    @property
    def primary_source(self) -> str | None:
        """Target of the first step: the record a document is about."""
        return self.steps[0].source if self.steps else None

    @property
    def rows_source(self) -> str | None:
        return self.rows or self.primary_source


__all__ = [
    "InputFn",
    "ParamFn",
    "IdExtractorFn",
    "PostMapFn",
    "PopulationStep",
    "Query",
]
