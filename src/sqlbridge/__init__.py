"""
sqlbridge -- bulk row transfer between Python and SQLite's native API.

Moves batches of string-typed rows across the host/native boundary with one
bind/step/reset cycle per row and explicit ownership of every buffer,
reports outcomes as ``Ok``/``Err`` results, and ships a small set of SQL
extensions registered process-wide.

Quick start:
    >>> import sqlbridge
    >>> sqlbridge.init()
    >>> with sqlbridge.Connection.open() as conn:
    ...     conn.execute("CREATE TABLE t(a TEXT, b TEXT)")
    ...     with conn.prepare("INSERT INTO t VALUES (?, ?)") as stmt:
    ...         sqlbridge.bulk_insert(stmt, 2, sqlbridge.Batch(["1", "x", "2", None]))
    ...     conn.check("SELECT count(*) = 2 FROM t")
    Ok(2)
    True
"""

from sqlbridge.core.errors import (
    AssertionFailedError,
    ContractViolation,
    DoubleReleaseError,
    EngineError,
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
from sqlbridge.core.logging import configure_logging, get_logger
from sqlbridge.core.result import Err, Ok, Result
from sqlbridge.core.settings import SqlBridgeSettings, get_settings
from sqlbridge.driver import (
    Batch,
    BulkLoader,
    Connection,
    OwnedValue,
    Row,
    RowIterator,
    Statement,
    assert_query,
    bulk_insert,
    bulk_read,
    subquery,
)
from sqlbridge.ext import register_extensions, registered_extensions, reset_extensions

__version__ = "0.1.0"


def init(*, configure_logs: bool = False) -> tuple[str, ...]:
    """
    Register the bundled SQL extensions for every connection opened from now on.

    Call once at startup, before opening connections. With ``configure_logs``
    structured logging is configured from ``SqlBridgeSettings`` as well.

    Raises:
        EngineError: The engine refused an extension
    """
    if configure_logs:
        settings = get_settings()
        configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return register_extensions().unwrap()


__all__ = [
    "__version__",
    "init",
    # Errors
    "Outcome",
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
    # Results
    "Result",
    "Ok",
    "Err",
    # Ambient
    "configure_logging",
    "get_logger",
    "SqlBridgeSettings",
    "get_settings",
    # Driver
    "Connection",
    "Statement",
    "Batch",
    "OwnedValue",
    "Row",
    "BulkLoader",
    "RowIterator",
    "bulk_insert",
    "bulk_read",
    "subquery",
    "assert_query",
    # Extensions
    "register_extensions",
    "registered_extensions",
    "reset_extensions",
]
