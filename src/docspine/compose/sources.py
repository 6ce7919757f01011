"""
Source declarations — named bindings between a model and its adapters.

Manifesto:
    A composite document is assembled from several collections. Each one is
    declared once with its adapter, its multiplicity and whether the
    document owns it. Ownership decides what ``delete`` removes; nothing
    else in the engine looks at it.

ARCHITECTURE
────────────
::

    SourceDeclaration(name, adapter, multiplicity, owned)
      Multiplicity.ONE   ── resolves to a single record
      Multiplicity.MANY  ── resolves to an ordered list of records

    SourceRegistry
      declarations   ── in declaration order
      owned          ── names in the order they were declared owned

Tags:
    docspine, compose, sources, registry, ownership

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from docspine.core.errors import AdapterFailure, ConfigError, DocspineError
from docspine.core.protocols import SourceAdapter


class Multiplicity(str, Enum):
    """Whether a source resolves to one record or a collection."""

    ONE = "one"
    MANY = "many"


@dataclass(frozen=True)
class SourceDeclaration:
    """One named source of a composite model."""

    name: str
    adapter: SourceAdapter
    multiplicity: Multiplicity = Multiplicity.ONE
    owned: bool = False

    @property
    def is_many(self) -> bool:
        return self.multiplicity is Multiplicity.MANY

    @classmethod
    def from_binding(cls, name: str, binding: Any, owned: bool = False) -> SourceDeclaration:
        """Build a declaration from ``adapter`` or ``[adapter]`` (Many)."""
        if isinstance(binding, (list, tuple)):
            if len(binding) != 1:
                raise ConfigError(
                    f"Source '{name}' must be bound as adapter or [adapter], "
                    f"got a sequence of {len(binding)}"
                )
            adapter, multiplicity = binding[0], Multiplicity.MANY
        else:
            adapter, multiplicity = binding, Multiplicity.ONE

        if not isinstance(adapter, SourceAdapter):
            raise ConfigError(
                f"Source '{name}' adapter {adapter!r} does not implement "
                "fetch/create/update/delete"
            )
        return cls(name=name, adapter=adapter, multiplicity=multiplicity, owned=owned)


class SourceRegistry:
    """
    Ordered registry of source declarations.

    Ownership order is kept separately from declaration order: sources are
    deleted in the order they were *declared owned*.
    """

    def __init__(
        self,
        declarations: Sequence[SourceDeclaration] = (),
        owned: Sequence[str] = (),
    ) -> None:
        self._sources: dict[str, SourceDeclaration] = {}
        self._owned: list[str] = []
        for declaration in declarations:
            self.add(declaration)
        self.bind(owned)

    def add(self, declaration: SourceDeclaration) -> None:
        if declaration.name in self._sources:
            raise ConfigError(f"Source '{declaration.name}' is already declared")
        self._sources[declaration.name] = declaration
        if declaration.owned:
            self._owned.append(declaration.name)

    def bind(self, names: Sequence[str]) -> None:
        """Mark previously declared sources as owned, in the given order."""
        for name in names:
            declaration = self.get(name)
            if name in self._owned:
                continue
            self._sources[name] = SourceDeclaration(
                name=declaration.name,
                adapter=declaration.adapter,
                multiplicity=declaration.multiplicity,
                owned=True,
            )
            self._owned.append(name)

    def get(self, name: str) -> SourceDeclaration:
        """
        Get a declared source by name.

        Raises:
            ConfigError: If the source is not declared
        """
        try:
            return self._sources[name]
        except KeyError:
            available = ", ".join(self._sources) or "(none)"
            raise ConfigError(
                f"Source '{name}' is not declared. Available: {available}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def __iter__(self) -> Iterator[SourceDeclaration]:
        return iter(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)

    @property
    def names(self) -> list[str]:
        return list(self._sources)

    @property
    def owned(self) -> list[str]:
        """Owned source names in ownership order."""
        return list(self._owned)


async def invoke(declaration: SourceDeclaration, operation: str, *args: Any) -> Any:
    """
    Await one adapter operation, wrapping foreign exceptions.

    Errors raised by the adapter that are already ``DocspineError`` pass
    through with the source and operation added to their context; anything
    else becomes an :class:`AdapterFailure` chained to the original.
    """
    method = getattr(declaration.adapter, operation)
    try:
        return await method(*args)
    except DocspineError as e:
        raise e.with_context(source_name=declaration.name, operation=operation)
    except Exception as e:
        raise AdapterFailure(
            f"{operation} on source '{declaration.name}' failed: {e}",
            cause=e,
        ).with_context(source_name=declaration.name, operation=operation) from e


__all__ = [
    "Multiplicity",
    "SourceDeclaration",
    "SourceRegistry",
    "invoke",
]
