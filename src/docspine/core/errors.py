"""
Structured error types for docspine.

Every failure raised by the composition engine is a ``DocspineError``.
Errors carry a category, an explicit retry flag, structured context and an
optional chained cause so that callers can log and route them without
parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the engine can report
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry the source, step and operation involved
    - **Error Chaining:** Adapter exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       DocspineError                              │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  NotFoundError      ConfigError        AdapterFailure            │
        │  (NOT_FOUND)        (CONFIG)           (ADAPTER)                 │
        │                                                                  │
        │  QueryDefinitionError   MutationError   MissingInitializerError  │
        │  (QUERY)                (MUTATION)      (CREATION)               │
        │       │                      │                                   │
        │  UnknownQueryError      UnknownMutationError                     │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    Wrapping an adapter exception:

    >>> try:
    ...     raise ConnectionError("socket closed")
    ... except ConnectionError as e:
    ...     err = AdapterFailure("fetch failed", cause=e).with_context(
    ...         source_name="post", operation="fetch"
    ...     )
    >>> err.context.source_name
    'post'
    >>> err.retryable
    True

Guardrails:
    ❌ DON'T: Raise bare Exception from engine code
    ✅ DO: Use the DocspineError subclass that names the failure

    ❌ DON'T: Swallow the adapter's exception
    ✅ DO: Pass it as cause= when wrapping

Tags:
    error-handling, exception-hierarchy, error-context, docspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    NOT_FOUND = "NOT_FOUND"       # Missing document or required record
    CONFIG = "CONFIG"             # Builder / configuration misuse
    QUERY = "QUERY"               # Query definition or lookup
    MUTATION = "MUTATION"         # Mutation definition or lookup
    CREATION = "CREATION"         # Initializer problems
    ADAPTER = "ADAPTER"           # Failure raised by a source adapter

    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover what the engine knows when something fails; anything
    else goes into ``metadata``. ``to_dict()`` drops unset fields.

    Attributes:
        model: Name of the composite model
        query: Query being resolved
        source_name: Source whose adapter or step failed
        operation: Adapter operation (fetch, create, update, delete)
        step: Index of the population step
        instruction_index: Index of the failing write instruction
        metadata: Additional key-value pairs
    """

    model: str | None = None
    query: str | None = None
    source_name: str | None = None
    operation: str | None = None
    step: int | None = None
    instruction_index: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["model", "query", "source_name", "operation", "step",
                    "instruction_index"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DocspineError(Exception):
    """
    Base exception for all docspine errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.

    Examples:
        >>> error = DocspineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(query="default").context.query
        'default'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DocspineError:
        """
        Add context to this error (fluent API).

        Fields already set are kept, so the innermost frame that knows a
        detail wins over outer frames re-annotating the same error.
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class NotFoundError(DocspineError):
    """No record for a required single source, or no document for an id."""

    default_category = ErrorCategory.NOT_FOUND

    def __init__(self, message: str, *, match: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.match = match


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(DocspineError):
    """
    Model or builder configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG


# =============================================================================
# QUERY / MUTATION / CREATION ERRORS
# =============================================================================


class QueryDefinitionError(DocspineError):
    """A query definition cannot be executed as declared."""

    default_category = ErrorCategory.QUERY


class UnknownQueryError(QueryDefinitionError):
    """Query not registered on the model."""

    def __init__(self, name: str, available: list[str] | None = None):
        self.query_name = name
        listed = ", ".join(available) if available else "(none)"
        super().__init__(f"Query '{name}' not found. Available: {listed}")


class MutationError(DocspineError):
    """A mutation produced write instructions that cannot be applied."""

    default_category = ErrorCategory.MUTATION


class UnknownMutationError(MutationError):
    """Mutation not registered on the model."""

    def __init__(self, name: str, available: list[str] | None = None):
        self.mutation_name = name
        listed = ", ".join(available) if available else "(none)"
        super().__init__(f"Mutation '{name}' not found. Available: {listed}")


class MissingInitializerError(DocspineError):
    """Creation attempted on a source without a registered initializer."""

    default_category = ErrorCategory.CREATION

    def __init__(self, source_name: str):
        self.source_name = source_name
        super().__init__(f"No initializer registered for source: {source_name}")


# =============================================================================
# ADAPTER ERRORS
# =============================================================================


class AdapterFailure(DocspineError):
    """
    Failure raised by a source adapter.

    Retryable by default: the engine itself never retries, but the failure
    came from I/O the caller may reasonably repeat. Earlier writes of the
    same operation are NOT rolled back.
    """

    default_category = ErrorCategory.ADAPTER
    default_retryable = True


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, DocspineError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, DocspineError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.ADAPTER
    if isinstance(error, KeyError):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocspineError",
    "NotFoundError",
    "ConfigError",
    "QueryDefinitionError",
    "UnknownQueryError",
    "MutationError",
    "UnknownMutationError",
    "MissingInitializerError",
    "AdapterFailure",
    "is_retryable",
    "categorize_error",
]
