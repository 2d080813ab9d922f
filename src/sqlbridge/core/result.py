"""
Result envelope for outcome reporting across the native boundary.

Provides a typed Result[T] pattern: operations in the transfer layer return
Ok[T] for success or Err[T] for failure instead of raising. This keeps
engine and shape errors out of the control flow of the bind/step loops and
lets the host decide whether to continue, retry, or abort.

Manifesto:
    - **Explicit over Implicit:** No hidden exceptions that callers might miss
    - **Outcome on both arms:** ``result.outcome`` is always an ``Outcome``
    - **Host decides:** ``unwrap()`` raises, ``unwrap_or()`` defaults

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     Result[T]                                │
        │                    (Type Alias)                              │
        ├─────────────────┬─────────────────┬─────────────────────────┤
        │     Ok[T]       │     Err[T]      │     Utilities           │
        │   (Success)     │   (Failure)     │                         │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Exc    │ • from_bool()           │
        │ • outcome = OK  │ • outcome       │                         │
        │ • map()         │ • unwrap_or()   │                         │
        │ • unwrap()      │ • unwrap()      │                         │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    >>> from sqlbridge.core.result import Ok, Err, Result
    >>> from sqlbridge.core.errors import NoResultError
    >>> def first(values: list[int]) -> Result[int]:
    ...     if not values:
    ...         return Err(NoResultError())
    ...     return Ok(values[0])
    >>> match first([4, 5]):
    ...     case Ok(value):
    ...         print(f"Result: {value}")
    ...     case Err(error):
    ...         print(f"Error: {error}")
    Result: 4
    >>> first([]).outcome
    <Outcome.NO_RESULT: -3>

Guardrails:
    ❌ DON'T: Use unwrap() without checking is_ok() first in library code
    ✅ DO: Use pattern matching or ``is_err()`` and propagate the Err

    ❌ DON'T: Wrap ContractViolation in Err
    ✅ DO: Raise it
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from sqlbridge.core.errors import Outcome, SqlBridgeError, outcome_of

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful result containing a value.

    Examples:
        >>> ok = Ok(1)
        >>> ok.is_ok(), ok.outcome
        (True, <Outcome.OK: 0>)
        >>> Ok(10).map(lambda x: x * 2).unwrap()
        20
    """

    value: T

    @property
    def outcome(self) -> Outcome:
        return Outcome.OK

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or default (always returns value for Ok)."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "outcome": Outcome.OK.name, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    Err short-circuits ``map`` so an error propagates through
    a chain unchanged. ``outcome`` reports the error's outcome code, or
    ``ENGINE_ERROR`` for exceptions from outside this package.

    Examples:
        >>> from sqlbridge.core.errors import TooManyResultsError
        >>> err = Err(TooManyResultsError())
        >>> err.is_err(), err.outcome
        (True, <Outcome.TOO_MANY_RESULTS: -6>)
        >>> err.map(lambda x: x + 1).unwrap_or(0)
        0
    """

    error: Exception

    @property
    def outcome(self) -> Outcome:
        return outcome_of(self.error)

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Get default since this is Err."""
        return default

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, SqlBridgeError):
            return {"ok": False, "outcome": self.outcome.name, "error": self.error.to_dict()}
        return {
            "ok": False,
            "outcome": self.outcome.name,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Type alias for Result
Result = Ok[T] | Err[T]


def from_bool(condition: bool, ok_value: T, error: Exception) -> Result[T]:
    """
    Create Result from boolean condition.

    Examples:
        >>> from sqlbridge.core.errors import ValueOutOfRangeError
        >>> from_bool(3 in (0, 1), 3, ValueOutOfRangeError(3)).outcome
        <Outcome.VALUE_OUT_OF_RANGE: -5>
    """
    if condition:
        return Ok(ok_value)
    return Err(error)


__all__ = [
    "Result",
    "Ok",
    "Err",
    "from_bool",
]
