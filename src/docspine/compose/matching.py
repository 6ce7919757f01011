"""
Match variants returned by population steps.

A population step says *how* to look up its source with one of three
explicit variants instead of a value whose shape has to be guessed:

::

    SingleMatch({"id": 1})                      one lookup
    ManyMatch([{"id": 1}, {"id": 2}])           ordered fan-out, one result per spec
    FanOut([[{"id": 1}], [{"id": 2}, ...]])     nested fan-out, one list per group

A plain ``dict`` is accepted as shorthand for ``SingleMatch``. Lists are
rejected: ``[{...}]`` could mean either fan-out variant.

The same variant is what a Document remembers per source; updates and
deletes target exactly the records those specs select.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from docspine.core.errors import QueryDefinitionError
from docspine.core.protocols import MatchSpec


def _spec(value: Any, where: str) -> MatchSpec:
    if not isinstance(value, Mapping):
        raise QueryDefinitionError(f"{where}: match spec must be a mapping, got {type(value).__name__}")
    return dict(value)


@dataclass(frozen=True)
class SingleMatch:
    """Look up a source with one match spec."""

    spec: MatchSpec

    def __post_init__(self) -> None:
        object.__setattr__(self, "spec", _spec(self.spec, "SingleMatch"))

    def specs(self) -> Iterator[MatchSpec]:
        yield self.spec


@dataclass(frozen=True)
class ManyMatch:
    """Resolve each spec independently; results keep the order of ``specs``."""

    entries: tuple[MatchSpec, ...]

    def __init__(self, specs: Sequence[Mapping[str, Any]]) -> None:
        object.__setattr__(self, "entries", tuple(_spec(s, "ManyMatch") for s in specs))

    def specs(self) -> Iterator[MatchSpec]:
        yield from self.entries


@dataclass(frozen=True)
class FanOut:
    """Nested fan-out: one inner group of specs per outer element."""

    groups: tuple[tuple[MatchSpec, ...], ...]

    def __init__(self, groups: Sequence[Sequence[Mapping[str, Any]]]) -> None:
        object.__setattr__(
            self,
            "groups",
            tuple(tuple(_spec(s, "FanOut") for s in group) for group in groups),
        )

    def specs(self) -> Iterator[MatchSpec]:
        for group in self.groups:
            yield from group


Match = Union[SingleMatch, ManyMatch, FanOut]


def coerce_match(value: Any, source: str) -> Match:
    """Normalize a param-fn return value into a :data:`Match` variant."""
    if isinstance(value, (SingleMatch, ManyMatch, FanOut)):
        return value
    if isinstance(value, Mapping):
        return SingleMatch(value)
    raise QueryDefinitionError(
        f"Population step for '{source}' returned {type(value).__name__}; "
        "expected a dict, SingleMatch, ManyMatch or FanOut"
    ).with_context(source_name=source)


__all__ = [
    "SingleMatch",
    "ManyMatch",
    "FanOut",
    "Match",
    "coerce_match",
]
