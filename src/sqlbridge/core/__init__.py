"""sqlbridge core -- outcome codes, errors, results, logging and settings.

Layer 1 -- Type System & Errors
    errors.py          Outcome codes and the SqlBridgeError hierarchy
    result.py          Result[T] envelope (Ok / Err)

Layer 2 -- Cross-Cutting Concerns
    logging.py         Structured logging (structlog)
    settings.py        SqlBridgeSettings (pydantic-settings, SQLBRIDGE_ prefix)
"""

from sqlbridge.core.errors import (
    AssertionFailedError,
    ContractViolation,
    DoubleReleaseError,
    EngineError,
    ErrorCategory,
    ErrorContext,
    LibraryLoadError,
    NoResultError,
    Outcome,
    ShapeMismatchError,
    SqlBridgeError,
    StaleRowError,
    StatementFinalizedError,
    TooManyResultsError,
    ValueOutOfRangeError,
    WrongColumnCountError,
    WrongValueTypeError,
)
from sqlbridge.core.result import Err, Ok, Result, from_bool

__all__ = [
    "Outcome",
    "ErrorCategory",
    "ErrorContext",
    "SqlBridgeError",
    "EngineError",
    "LibraryLoadError",
    "ShapeMismatchError",
    "WrongColumnCountError",
    "NoResultError",
    "WrongValueTypeError",
    "ValueOutOfRangeError",
    "TooManyResultsError",
    "ContractViolation",
    "StatementFinalizedError",
    "StaleRowError",
    "DoubleReleaseError",
    "AssertionFailedError",
    "Result",
    "Ok",
    "Err",
    "from_bool",
]
