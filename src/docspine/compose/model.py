"""Composite Model — sources, queries, mutations and initializers in one façade.

WHY
───
Callers want a document, not a set of adapter calls. The model binds the
source registry, a mapping function and the named queries, mutations and
initializers, and exposes four operations: ``get``, ``query``, ``create``
and ``delete``.

ARCHITECTURE
────────────
::

    ModelBuilder  (fluent, mutable)  ──build()──▶  ModelConfig (frozen)
                                                      │
                                                      ▼
                                               CompositeModel
      get(id)          default query        → Document
      query(name, *a)  named query          → Document | [Document]
      create(data)     initializers → id    → get(id)
      delete(id)       get(id).delete()     → [DeletionReport]

      Document.mutate  → apply_mutation()   → writes → re-run query
      Document.delete  → delete_document()  → owned sources, ownership order

Every adapter call is awaited before the next one starts. There is no
rollback: a failure part-way through writes leaves earlier writes applied
and surfaces as the error of the failing instruction.

Example::

    Post = (
        CompositeModel.builder("Post")
        .add_source("post", MemoryAdapter(store, "posts"))
        .add_source("author", MemoryAdapter(store, "users"))
        .map(lambda s: {"title": s["post"]["title"], "author": s["author"]["username"]})
        .add_query(
            "default",
            Query.create()
            .input(lambda id: {"post": {"id": id}}, lambda s: s["post"]["id"])
            .populate("post", lambda s: {"id": s["post"]["id"]})
            .populate("author", lambda s: {"id": s["post"]["author"]}),
        )
        .build()
    )
    doc = await Post.get(1)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from docspine.compose.context import SourceContext, ValueKind
from docspine.compose.document import Document
from docspine.compose.query import Query
from docspine.compose.resolver import PopulationResolver
from docspine.compose.sources import SourceDeclaration, SourceRegistry, invoke
from docspine.compose.writes import DeletionReport, WriteInstruction, WriteOperation
from docspine.core.errors import (
    ConfigError,
    DocspineError,
    ErrorCategory,
    MissingInitializerError,
    MutationError,
    NotFoundError,
    QueryDefinitionError,
    UnknownMutationError,
    UnknownQueryError,
)
from docspine.core.logging import LogContext, get_logger
from docspine.core.settings import get_settings

logger = get_logger(__name__)

MapFn = Callable[[SourceContext], Any]
MutationFn = Callable[..., Sequence[Any]]
InitializerFn = Callable[[Any, SourceContext], Any]


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class ModelConfig:
    """
    Complete, inspectable configuration of a composite model.

    Attributes:
        name: Model name (used in logs and error context)
        sources: Source declarations in declaration order
        owned: Owned source names in ownership order
        map_fn: Mapping function, resolved sources → public view
        queries: Named queries
        mutations: Named mutation functions
        initializers: ``(source, fn)`` pairs in registration order
        default_query: Query used by get/create/delete; settings default if None
    """

    name: str
    sources: tuple[SourceDeclaration, ...] = ()
    owned: tuple[str, ...] = ()
    map_fn: MapFn | None = None
    queries: Mapping[str, Query] = field(default_factory=dict)
    mutations: Mapping[str, MutationFn] = field(default_factory=dict)
    initializers: tuple[tuple[str, InitializerFn], ...] = ()
    default_query: str | None = None


class ModelBuilder:
    """Fluent builder producing a :class:`ModelConfig`; every method returns self."""

    def __init__(self, name: str = "model") -> None:
        self._name = name
        self._sources: list[SourceDeclaration] = []
        self._owned: list[str] = []
        self._map_fn: MapFn | None = None
        self._queries: dict[str, Query] = {}
        self._mutations: dict[str, MutationFn] = {}
        self._initializers: list[tuple[str, InitializerFn]] = []
        self._default_query: str | None = None

    def add_source(self, name: str, binding: Any) -> ModelBuilder:
        """Declare a source; ``[adapter]`` denotes Many multiplicity."""
        if any(source.name == name for source in self._sources):
            raise ConfigError(f"Source '{name}' is already declared")
        self._sources.append(SourceDeclaration.from_binding(name, binding))
        return self

    def add_bound_source(self, name: str, binding: Any) -> ModelBuilder:
        """``add_source`` plus ownership."""
        self.add_source(name, binding)
        return self.bind_sources([name])

    def bind_sources(self, names: Sequence[str]) -> ModelBuilder:
        declared = {source.name for source in self._sources}
        for name in names:
            if name not in declared:
                raise ConfigError(f"Cannot bind undeclared source '{name}'")
            if name not in self._owned:
                self._owned.append(name)
        return self

    def map(self, fn: MapFn) -> ModelBuilder:
        self._map_fn = fn
        return self

    def add_query(self, name: str, query: Query) -> ModelBuilder:
        if name in self._queries:
            raise ConfigError(f"Query '{name}' is already registered")
        self._queries[name] = query
        return self

    def add_mutation(self, name: str, fn: MutationFn) -> ModelBuilder:
        if name in self._mutations:
            raise ConfigError(f"Mutation '{name}' is already registered")
        self._mutations[name] = fn
        return self

    def add_initializer(self, source_name: str, fn: InitializerFn) -> ModelBuilder:
        if not any(source.name == source_name for source in self._sources):
            raise ConfigError(f"Cannot add initializer for undeclared source '{source_name}'")
        if any(name == source_name for name, _ in self._initializers):
            raise ConfigError(f"Initializer for '{source_name}' is already registered")
        self._initializers.append((source_name, fn))
        return self

    def default_query(self, name: str) -> ModelBuilder:
        self._default_query = name
        return self

    def to_config(self) -> ModelConfig:
        return ModelConfig(
            name=self._name,
            sources=tuple(self._sources),
            owned=tuple(self._owned),
            map_fn=self._map_fn,
            queries=dict(self._queries),
            mutations=dict(self._mutations),
            initializers=tuple(self._initializers),
            default_query=self._default_query,
        )

    def build(self) -> CompositeModel:
        return CompositeModel(self.to_config())


# =============================================================================
# Model
# =============================================================================


class CompositeModel:
    """
    Runtime façade over a validated :class:`ModelConfig`.

    Raises:
        ConfigError: at construction, for a missing mapping function,
            missing default query, or a query/initializer naming an
            undeclared source
    """

    def __init__(self, config: ModelConfig) -> None:
        self.config = config
        self.name = config.name
        self._sources = SourceRegistry(config.sources, config.owned)
        self._resolver = PopulationResolver(self._sources, config.name)
        self._default_query = config.default_query or get_settings().default_query
        self._validate()

    @classmethod
    def builder(cls, name: str = "model") -> ModelBuilder:
        return ModelBuilder(name)

    def _validate(self) -> None:
        if self.config.map_fn is None:
            raise ConfigError(f"Model '{self.name}' has no mapping function")
        if self._default_query not in self.config.queries:
            raise ConfigError(
                f"Model '{self.name}' has no default query '{self._default_query}'"
            )
        if self.config.queries[self._default_query].multiple:
            raise ConfigError(
                f"Default query '{self._default_query}' of model '{self.name}' "
                "must resolve a single document"
            )
        for query_name, query in self.config.queries.items():
            for source in query.sources:
                if source not in self._sources:
                    raise ConfigError(
                        f"Query '{query_name}' populates undeclared source '{source}'"
                    )
            if query.rows is not None and query.rows not in query.sources:
                raise ConfigError(
                    f"Query '{query_name}' designates rows source '{query.rows}' it never populates"
                )
        for source, _ in self.config.initializers:
            if source not in self._sources:
                raise ConfigError(f"Initializer names undeclared source '{source}'")

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def sources(self) -> SourceRegistry:
        return self._sources

    @property
    def default_query_name(self) -> str:
        return self._default_query

    def get_query(self, name: str) -> Query:
        try:
            return self.config.queries[name]
        except KeyError:
            raise UnknownQueryError(name, sorted(self.config.queries)) from None

    def __repr__(self) -> str:
        return f"CompositeModel(name={self.name!r}, sources={self._sources.names})"

    # -------------------------------------------------------------------------
    # Runtime operations
    # -------------------------------------------------------------------------

    async def get(self, id: Any) -> Document:
        """Resolve the default query for ``id``; NotFoundError if absent."""
        async with LogContext(model=self.name, operation="get"):
            try:
                return await self._materialize(self._default_query, (id,))
            except NotFoundError as e:
                raise e.with_context(document_id=id)

    async def query(self, name: str, *args: Any) -> Document | list[Document]:
        """Run a named query: a Document, or a list for ``multiple`` queries."""
        query = self.get_query(name)
        async with LogContext(model=self.name, operation="query", query=name):
            if not query.multiple:
                return await self._materialize(name, args)

            resolution = await self._resolver.resolve(query, args, name)
            rows = self._resolver.rows(query, resolution, name)
            documents = [
                Document(
                    data=self.config.map_fn(row),
                    sources=row,
                    model=self,
                    query_name=name,
                    args=args,
                    canonical=False,
                )
                for row in rows
            ]
            logger.debug("query_materialized", query=name, documents=len(documents))
            return documents

    async def create(self, data: Any) -> Document:
        """Run initializers in registration order, then ``get`` the new id."""
        query = self.get_query(self._default_query)
        initializers = self.config.initializers
        primary = query.primary_source
        if primary is None or primary not in {source for source, _ in initializers}:
            raise MissingInitializerError(primary or "<no population steps>").with_context(
                model=self.name, query=self._default_query
            )
        if query.id_extractor is None:
            raise QueryDefinitionError(
                f"Default query '{self._default_query}' has no id extractor"
            ).with_context(model=self.name, query=self._default_query)

        async with LogContext(model=self.name, operation="create"):
            context = SourceContext()
            for source_name, fn in initializers:
                declaration = self._sources.get(source_name)
                payload = fn(data, context)
                try:
                    value, kind = await self._create_records(declaration, payload)
                except DocspineError as e:
                    raise e.with_context(model=self.name, initializer=source_name)
                context = context.with_value(source_name, value, kind)
                logger.debug("initializer_applied", source=source_name, kind=kind.value)

            document_id = query.id_extractor(context)
            logger.info("document_created", id=document_id)
        return await self.get(document_id)

    async def delete(self, id: Any) -> list[DeletionReport]:
        """``get(id)`` then :meth:`Document.delete`."""
        document = await self.get(id)
        return await document.delete()

    # -------------------------------------------------------------------------
    # Document lifecycle (called by Document)
    # -------------------------------------------------------------------------

    async def apply_mutation(self, document: Document, name: str, args: tuple[Any, ...]) -> Document:
        """Apply a named mutation's writes in order and re-resolve the document."""
        fn = self.config.mutations.get(name)
        if fn is None:
            raise UnknownMutationError(name, sorted(self.config.mutations))
        if not document.canonical:
            document = await self._canonical(document)

        async with LogContext(model=self.name, operation="mutate", mutation=name):
            # The mutation sees a copy; the document snapshot never changes
            writes = fn(*args, document.sources.copy())
            instructions = [WriteInstruction.from_value(value) for value in writes]
            for index, instruction in enumerate(instructions):
                try:
                    await self._apply_write(document, instruction)
                except DocspineError as e:
                    raise e.with_context(model=self.name, instruction_index=index, mutation=name)
                logger.debug(
                    "write_applied",
                    index=index,
                    source=instruction.source,
                    write=instruction.operation.value,
                )
            logger.info("mutation_applied", mutation=name, writes=len(instructions))
            return await self._materialize(document.query_name, document.args)

    async def delete_document(self, document: Document) -> list[DeletionReport]:
        """Delete every owned source's matching records, in ownership order."""
        if not document.canonical:
            document = await self._canonical(document)

        async with LogContext(model=self.name, operation="delete"):
            reports = []
            for name in self._sources.owned:
                declaration = self._sources.get(name)
                match = document.matches.get(name)
                if match is None:
                    logger.warning("owned_source_unresolved", source=name, query=document.query_name)
                    reports.append(DeletionReport(source=name))
                    continue
                deleted = []
                for spec in match.specs():
                    deleted.extend(await invoke(declaration, "delete", spec))
                reports.append(DeletionReport(source=name, deleted=deleted))
            logger.info(
                "document_deleted",
                sources=[report.source for report in reports],
                records=sum(len(report.deleted) for report in reports),
            )
            return reports

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _materialize(self, query_name: str, args: tuple[Any, ...]) -> Document:
        query = self.get_query(query_name)
        resolution = await self._resolver.resolve(query, args, query_name)
        primary = query.primary_source
        if primary is not None and resolution.context.get(primary) == []:
            raise NotFoundError(
                f"Primary source '{primary}' resolved no records"
            ).with_context(model=self.name, query=query_name, source_name=primary)
        return Document(
            data=self.config.map_fn(resolution.context),
            sources=resolution.context,
            matches=resolution.matches,
            model=self,
            query_name=query_name,
            args=args,
        )

    async def _canonical(self, document: Document) -> Document:
        """Re-materialize a row document through the default query."""
        query = self.get_query(self._default_query)
        if query.id_extractor is None:
            raise QueryDefinitionError(
                f"Rows of query '{document.query_name}' cannot be written without "
                f"an id extractor on '{self._default_query}'"
            ).with_context(model=self.name, query=document.query_name)
        return await self.get(query.id_extractor(document.sources))

    async def _apply_write(self, document: Document, instruction: WriteInstruction) -> None:
        declaration = self._sources.get(instruction.source)
        if instruction.operation is WriteOperation.CREATE:
            await invoke(declaration, "create", dict(instruction.data))
            return

        if instruction.match is not None:
            specs = [instruction.match]
        elif instruction.source in document.matches:
            specs = list(document.matches[instruction.source].specs())
        else:
            raise MutationError(
                f"Cannot {instruction.operation.value} source '{instruction.source}': "
                "it was not resolved by the document and no match was given"
            ).with_context(source_name=instruction.source)

        for spec in specs:
            if instruction.operation is WriteOperation.UPDATE:
                await invoke(declaration, "update", spec, dict(instruction.data))
            else:
                await invoke(declaration, "delete", spec)

    async def _create_records(self, declaration: SourceDeclaration, payload: Any) -> tuple[Any, ValueKind]:
        if isinstance(payload, Mapping):
            return await invoke(declaration, "create", dict(payload)), ValueKind.RECORD
        if isinstance(payload, (list, tuple)):
            created = [await invoke(declaration, "create", dict(item)) for item in payload]
            return created, ValueKind.RECORDS
        raise DocspineError(
            f"Initializer for '{declaration.name}' returned {type(payload).__name__}; "
            "expected a mapping or a list of mappings",
            category=ErrorCategory.CREATION,
        ).with_context(source_name=declaration.name)


__all__ = [
    "MapFn",
    "MutationFn",
    "InitializerFn",
    "ModelConfig",
    "ModelBuilder",
    "CompositeModel",
]
