"""
Structured error types for sqlbridge.

Provides the outcome vocabulary shared by every component of the binding
layer and a typed exception hierarchy that carries it. Core operations never
raise engine or shape errors across the native boundary; they wrap them in an
``Err`` (see :mod:`sqlbridge.core.result`). Host-facing convenience methods
unwrap and raise them. Contract violations are programmer errors and are
always raised immediately.

Each SqlBridgeError carries:
- **Category:** What kind of error (engine, shape, contract, config)
- **Outcome:** The ``Outcome`` code reported to the caller
- **Context:** SQL text, row index, column index and custom fields
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Distinguishable outcomes:** Every shape mismatch has its own type
    - **Engine codes unchanged:** EngineError keeps the SQLite status verbatim
    - **Fail fast on misuse:** ContractViolation is an AssertionError
    - **Rich Context:** Errors carry metadata for logging

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       SqlBridgeError                             │
        │  (category, outcome, context, cause)                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  EngineError          ShapeMismatchError      ContractViolation  │
        │  (ENGINE)             (SHAPE)                 (CONTRACT)         │
        │       │                    │                       │             │
        │  LibraryLoadError     WrongColumnCountError   StatementFinalized │
        │  (CONFIG)             NoResultError           StaleRowError      │
        │                       WrongValueTypeError     DoubleReleaseError │
        │                       ValueOutOfRangeError                       │
        │                       TooManyResultsError                        │
        │                                                                  │
        │  AssertionFailedError                                            │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ValueOutOfRangeError(7)
    >>> error.outcome
    <Outcome.VALUE_OUT_OF_RANGE: -5>
    >>> str(error)
    'value 7 out of range 0..1'

    >>> error = EngineError(19, "UNIQUE constraint failed: t.id")
    >>> error.with_context(sql="INSERT INTO t VALUES (?)", row=2).context.row
    2

Guardrails:
    ❌ DON'T: Translate engine status codes into new numbers
    ✅ DO: Keep ``EngineError.code`` equal to what SQLite returned

    ❌ DON'T: Return a ContractViolation inside an Err
    ✅ DO: Raise it; continuing would operate on an undefined statement

Tags:
    error-handling, exception-hierarchy, outcome-codes, sqlbridge
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


class Outcome(IntEnum):
    """
    Outcome codes reported by the binding layer.

    ``OK`` is the only success code. The negative values are stable and can
    be handed to callers that only understand integers.
    """

    OK = 0
    ENGINE_ERROR = -1
    WRONG_COLUMN_COUNT = -2
    NO_RESULT = -3
    WRONG_VALUE_TYPE = -4
    VALUE_OUT_OF_RANGE = -5
    TOO_MANY_RESULTS = -6


class ErrorCategory(str, Enum):
    """
    Error categories for classification and log routing.

    Attributes:
        ENGINE: SQLite reported a non-success status
        SHAPE: A query's result did not have the expected shape
        CONTRACT: The caller violated a documented precondition
        CONFIG: The native library could not be located or loaded
        INTERNAL: Bugs, unexpected state
    """

    ENGINE = "ENGINE"
    SHAPE = "SHAPE"
    CONTRACT = "CONTRACT"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set appear in ``to_dict()``; anything without a
    dedicated field goes into ``metadata``.

    Examples:
        >>> ctx = ErrorContext(sql="SELECT 1", row=3)
        >>> ctx.to_dict()
        {'sql': 'SELECT 1', 'row': 3}
    """

    sql: str | None = None
    row: int | None = None
    column: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result: dict[str, Any] = {}
        for key in ("sql", "row", "column"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SqlBridgeError(Exception):
    """
    Base exception for all sqlbridge errors.

    Subclasses set ``default_category`` and ``default_outcome`` so that the
    outcome reported to a caller is decided by the error type, not by the
    code path that produced it.

    Examples:
        >>> error = SqlBridgeError("something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["outcome"]
        'ENGINE_ERROR'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_outcome: Outcome = Outcome.ENGINE_ERROR

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.outcome = self.default_outcome
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SqlBridgeError:
        """
        Add context to this error (fluent API).

        Usage:
            return Err(EngineError(rc, msg).with_context(sql=stmt.sql, row=4))
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "outcome": self.outcome.name,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, outcome={self.outcome.name})"


# =============================================================================
# ENGINE ERRORS
# =============================================================================


class EngineError(SqlBridgeError):
    """
    SQLite reported a non-success status.

    ``code`` is the status exactly as returned by prepare, bind, step,
    clear_bindings, reset or finalize. ``code_name`` is SQLite's own
    description of that status when the library is available.
    """

    default_category = ErrorCategory.ENGINE
    default_outcome = Outcome.ENGINE_ERROR

    def __init__(
        self,
        code: int,
        message: str | None = None,
        *,
        code_name: str | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message or code_name or f"sqlite status {code}", context=context, cause=cause)
        self.code = code
        self.code_name = code_name

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["code"] = self.code
        if self.code_name:
            result["code_name"] = self.code_name
        return result


class LibraryLoadError(SqlBridgeError):
    """The SQLite shared library could not be located or lacks a required symbol."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# SHAPE MISMATCH ERRORS
# =============================================================================


class ShapeMismatchError(SqlBridgeError):
    """A query's result did not have the shape the caller required."""

    default_category = ErrorCategory.SHAPE


class WrongColumnCountError(ShapeMismatchError):
    default_outcome = Outcome.WRONG_COLUMN_COUNT

    def __init__(self, expected: int, actual: int, **kwargs: Any):
        super().__init__(f"expected {expected} column, got {actual}", **kwargs)
        self.expected = expected
        self.actual = actual


class NoResultError(ShapeMismatchError):
    default_outcome = Outcome.NO_RESULT

    def __init__(self, message: str = "query returned no rows", **kwargs: Any):
        super().__init__(message, **kwargs)


class WrongValueTypeError(ShapeMismatchError):
    default_outcome = Outcome.WRONG_VALUE_TYPE

    def __init__(self, actual_type: str, **kwargs: Any):
        super().__init__(f"expected an integer value, got {actual_type}", **kwargs)
        self.actual_type = actual_type


class ValueOutOfRangeError(ShapeMismatchError):
    default_outcome = Outcome.VALUE_OUT_OF_RANGE

    def __init__(self, value: int, low: int = 0, high: int = 1, **kwargs: Any):
        super().__init__(f"value {value} out of range {low}..{high}", **kwargs)
        self.value = value
        self.low = low
        self.high = high


class TooManyResultsError(ShapeMismatchError):
    default_outcome = Outcome.TOO_MANY_RESULTS

    def __init__(self, message: str = "query returned more than one row", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# CONTRACT VIOLATIONS (programmer errors, always raised)
# =============================================================================


class ContractViolation(SqlBridgeError, AssertionError):
    """
    The caller violated a documented precondition.

    Also an ``AssertionError``: these indicate a bug in the calling code,
    not a runtime condition, and must not be caught and retried.
    """

    default_category = ErrorCategory.CONTRACT


class StatementFinalizedError(ContractViolation):
    """A statement handle was used after it was finalized."""


class StaleRowError(ContractViolation):
    """A borrowed row was read after its statement advanced, reset or closed."""


class DoubleReleaseError(ContractViolation):
    """A value buffer or batch container was released a second time."""


# =============================================================================
# HOST-LEVEL ERRORS
# =============================================================================


class AssertionFailedError(SqlBridgeError):
    """A required boolean query evaluated to false."""

    default_category = ErrorCategory.SHAPE
    default_outcome = Outcome.OK


def outcome_of(error: Exception) -> Outcome:
    """Get the outcome code for any exception."""
    if isinstance(error, SqlBridgeError):
        return error.outcome
    return Outcome.ENGINE_ERROR


__all__ = [
    "Outcome",
    "ErrorCategory",
    "ErrorContext",
    "SqlBridgeError",
    # Engine
    "EngineError",
    "LibraryLoadError",
    # Shape
    "ShapeMismatchError",
    "WrongColumnCountError",
    "NoResultError",
    "WrongValueTypeError",
    "ValueOutOfRangeError",
    "TooManyResultsError",
    # Contract
    "ContractViolation",
    "StatementFinalizedError",
    "StaleRowError",
    "DoubleReleaseError",
    # Host
    "AssertionFailedError",
    "outcome_of",
]
