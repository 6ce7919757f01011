"""Docspine Core -- errors, logging, settings and the adapter protocol.

Architecture::

    errors.py      Structured error hierarchy (DocspineError, NotFoundError, ...)
    logging.py     structlog configuration + LogContext
    settings.py    DocspineSettings (pydantic-settings, DOCSPINE_* env)
    protocols.py   SourceAdapter protocol, Record / MatchSpec aliases

Nothing in this package knows about queries or documents; the engine in
:mod:`docspine.compose` builds on it.
"""

from docspine.core.errors import (
    AdapterFailure,
    ConfigError,
    DocspineError,
    ErrorCategory,
    ErrorContext,
    MissingInitializerError,
    MutationError,
    NotFoundError,
    QueryDefinitionError,
    UnknownMutationError,
    UnknownQueryError,
    categorize_error,
    is_retryable,
)
from docspine.core.logging import LogContext, configure_logging, get_logger
from docspine.core.protocols import MatchSpec, Record, SourceAdapter
from docspine.core.settings import DocspineSettings, clear_settings_cache, get_settings

__all__ = [
    # Errors
    "AdapterFailure",
    "ConfigError",
    "DocspineError",
    "ErrorCategory",
    "ErrorContext",
    "MissingInitializerError",
    "MutationError",
    "NotFoundError",
    "QueryDefinitionError",
    "UnknownMutationError",
    "UnknownQueryError",
    "categorize_error",
    "is_retryable",
    # Logging
    "LogContext",
    "configure_logging",
    "get_logger",
    # Protocols
    "MatchSpec",
    "Record",
    "SourceAdapter",
    # Settings
    "DocspineSettings",
    "clear_settings_cache",
    "get_settings",
]
