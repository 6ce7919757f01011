"""Population Resolver — turns a query's steps into adapter fetches.

WHY
───
Each population step only knows how to compute a match from what earlier
steps produced. The resolver walks the steps strictly in declaration
order, awaits every fetch before the next step computes its match, and
applies the source's multiplicity to every spec it resolves.

ARCHITECTURE
────────────
::

    resolve(query, args)
      seed = query.input_fn(*args)          → SourceContext (SEED values)
      for step in query.steps:              (sequential, never reordered)
          match = coerce(step.param_fn(ctx))
          value = resolve_match(source, match)
          ctx = ctx.with_value(step.source, value)
      → Resolution(context, matches)

    rows(query, resolution)                 → [SourceContext, ...]

    Per-spec resolution:
      One source   ── first matching record, NotFoundError if none
      Many source  ── every matching record, natural adapter order

    Match variant       One source         Many source
    ─────────────       ──────────         ───────────
    SingleMatch         RECORD             RECORDS
    ManyMatch           RECORDS            NESTED
    FanOut              NESTED             NESTED (list of lists of lists)

Specs are resolved one after another in the order given; output order
always equals spec order.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from docspine.compose.context import SourceContext, ValueKind
from docspine.compose.matching import FanOut, ManyMatch, Match, SingleMatch, coerce_match
from docspine.compose.query import Query
from docspine.compose.sources import SourceDeclaration, SourceRegistry, invoke
from docspine.core.errors import DocspineError, NotFoundError, QueryDefinitionError
from docspine.core.logging import get_logger
from docspine.core.protocols import MatchSpec, Record

logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Final context of a query plus the match used for every resolved source."""

    context: SourceContext
    matches: dict[str, Match] = field(default_factory=dict)


# Kind of one element when a list-valued source is split into rows
_ELEMENT_KIND = {
    ValueKind.RECORDS: ValueKind.RECORD,
    ValueKind.NESTED: ValueKind.RECORDS,
}


class PopulationResolver:
    """Executes query population pipelines against a source registry."""

    def __init__(self, sources: SourceRegistry, model_name: str = "") -> None:
        self._sources = sources
        self._model_name = model_name

    async def resolve(self, query: Query, args: tuple[Any, ...], query_name: str = "") -> Resolution:
        """
        Run the input function and every population step in order.

        Raises:
            QueryDefinitionError: input or param function misbehaves
            NotFoundError: a One source spec matched nothing
            AdapterFailure: an adapter call failed
        """
        seed = query.input_fn(*args)
        if not isinstance(seed, Mapping):
            raise QueryDefinitionError(
                f"Input function must return a mapping, got {type(seed).__name__}"
            ).with_context(model=self._model_name, query=query_name)

        context = SourceContext.seed(seed)
        matches: dict[str, Match] = {}

        for index, step in enumerate(query.steps):
            declaration = self._sources.get(step.source)
            try:
                raw = step.param_fn(context)
            except KeyError as e:
                raise QueryDefinitionError(
                    f"Population step {index} ('{step.source}') references {e} "
                    "before it is resolved",
                    cause=e,
                ).with_context(model=self._model_name, query=query_name, step=index) from e

            try:
                match = coerce_match(raw, step.source)
                value, kind = await self._resolve_match(declaration, match)
            except DocspineError as e:
                raise e.with_context(model=self._model_name, query=query_name, step=index)

            context = context.with_value(step.source, value, kind)
            matches[step.source] = match
            logger.debug(
                "population_step_resolved",
                query=query_name,
                step=index,
                source=step.source,
                match=type(match).__name__,
                kind=kind.value,
            )

        logger.debug("query_resolved", query=query_name, sources=list(matches))
        return Resolution(context=context, matches=matches)

    def rows(self, query: Query, resolution: Resolution, query_name: str = "") -> list[SourceContext]:
        """Split a resolved context into per-document row contexts."""
        context = resolution.context
        if not query.multiple:
            return [context]

        if query.post_map_fn is not None:
            grouped = query.post_map_fn(context)
            rows = []
            for row in grouped:
                if not isinstance(row, Mapping):
                    raise QueryDefinitionError(
                        f"Post-map function must yield mappings, got {type(row).__name__}"
                    ).with_context(model=self._model_name, query=query_name)
                if isinstance(row, SourceContext):
                    rows.append(row)
                else:
                    # Plain mappings carry no multiplicity; their values are seeds
                    rows.append(SourceContext(row))
            return rows

        rows_source = query.rows_source
        if rows_source is None or rows_source not in context:
            raise QueryDefinitionError(
                f"Rows source '{rows_source}' was not resolved by the query"
            ).with_context(model=self._model_name, query=query_name)
        value = context[rows_source]
        if not isinstance(value, list):
            return [context]
        kind = _ELEMENT_KIND.get(context.kind_of(rows_source), ValueKind.SEED)
        return [context.with_value(rows_source, item, kind) for item in value]

    # -------------------------------------------------------------------------
    # Match resolution
    # -------------------------------------------------------------------------

    async def _resolve_match(self, declaration: SourceDeclaration, match: Match) -> tuple[Any, ValueKind]:
        if isinstance(match, SingleMatch):
            value = await self._resolve_spec(declaration, match.spec)
            return value, ValueKind.RECORDS if declaration.is_many else ValueKind.RECORD

        if isinstance(match, ManyMatch):
            values = [await self._resolve_spec(declaration, spec) for spec in match.specs()]
            return values, ValueKind.NESTED if declaration.is_many else ValueKind.RECORDS

        if isinstance(match, FanOut):
            groups = []
            for group in match.groups:
                groups.append([await self._resolve_spec(declaration, spec) for spec in group])
            return groups, ValueKind.NESTED

        raise QueryDefinitionError(f"Unsupported match variant: {match!r}")

    async def _resolve_spec(self, declaration: SourceDeclaration, spec: MatchSpec) -> Record | list[Record]:
        records = await invoke(declaration, "fetch", spec)
        if declaration.is_many:
            return list(records)
        if not records:
            raise NotFoundError(
                f"No '{declaration.name}' record matches {spec}",
                match=spec,
            ).with_context(source_name=declaration.name)
        if len(records) > 1:
            logger.debug(
                "single_source_multiple_matches",
                source=declaration.name,
                match=spec,
                count=len(records),
            )
        return records[0]


__all__ = [
    "Resolution",
    "PopulationResolver",
]
