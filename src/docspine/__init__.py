"""
Docspine - declarative document composition over independent sources.

A composite model fetches records from named sources, joins them through
ordered population steps, projects them with a mapping function, and
routes mutations, creations and cascading deletions back to the sources
it owns.

- docspine.core: errors, logging, settings, the SourceAdapter protocol
- docspine.compose: queries, resolver, documents, composite models
- docspine.adapters: the in-memory adapter
"""

__version__ = "0.1.0"

from docspine.adapters import MemoryAdapter, MemoryStore
from docspine.compose import *  # noqa
from docspine.compose import __all__ as _compose_all
from docspine.core.errors import (
    AdapterFailure,
    ConfigError,
    DocspineError,
    MissingInitializerError,
    MutationError,
    NotFoundError,
    QueryDefinitionError,
    UnknownMutationError,
    UnknownQueryError,
)

__all__ = [
    *_compose_all,
    "MemoryAdapter",
    "MemoryStore",
    "AdapterFailure",
    "ConfigError",
    "DocspineError",
    "MissingInitializerError",
    "MutationError",
    "NotFoundError",
    "QueryDefinitionError",
    "UnknownMutationError",
    "UnknownQueryError",
]
