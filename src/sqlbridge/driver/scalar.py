"""
Scalar assert query: turn a boolean-producing SQL query into a typed result.

The query must produce exactly one row with exactly one INTEGER column whose
value is 0 or 1. Every other shape is reported with its own outcome so the
caller can tell "the check failed" apart from "the check is malformed".

Architecture:
    ::

        prepare ──fail──► EngineError
           │
        column_count == 1 ──no──► WrongColumnCount
           │
        step ──DONE──► NoResult
           │ ──other─► EngineError
           │  ROW
        column_type INTEGER ──no──► WrongValueType
           │
        value in {0, 1} ──no──► ValueOutOfRange
           │
        step ──ROW──► TooManyResults
           │ ──other─► EngineError
           │  DONE
        finalize ──fail──► EngineError
           │
        Ok(value)

    The statement is finalized on every path.

Examples:
    >>> assert_query(conn, "SELECT 1")
    Ok(1)
    >>> assert_query(conn, "SELECT 2").outcome
    <Outcome.VALUE_OUT_OF_RANGE: -5>
    >>> assert_query(conn, "SELECT 1 WHERE 0").outcome
    <Outcome.NO_RESULT: -3>
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlbridge.core.errors import (
    NoResultError,
    TooManyResultsError,
    ValueOutOfRangeError,
    WrongColumnCountError,
    WrongValueTypeError,
)
from sqlbridge.core.logging import get_logger
from sqlbridge.core.result import Err, Ok, Result, from_bool
from sqlbridge.driver import native
from sqlbridge.driver.statement import Statement, prepare

if TYPE_CHECKING:
    from sqlbridge.driver.connection import Connection

logger = get_logger(__name__)


def _evaluate(stmt: Statement) -> Result[int]:
    count = stmt.column_count
    if count != 1:
        return Err(WrongColumnCountError(1, count).with_context(sql=stmt.sql))

    rc = stmt.step()
    if rc == native.SQLITE_DONE:
        return Err(NoResultError().with_context(sql=stmt.sql))
    if rc != native.SQLITE_ROW:
        return Err(stmt.error(rc))

    column_type = stmt.column_type(0)
    if column_type != native.SQLITE_INTEGER:
        type_name = native.TYPE_NAMES.get(column_type, str(column_type))
        return Err(WrongValueTypeError(type_name).with_context(sql=stmt.sql))

    value = stmt.column_int(0)
    checked = from_bool(value in (0, 1), value, ValueOutOfRangeError(value).with_context(sql=stmt.sql))
    if checked.is_err():
        return checked

    rc = stmt.step()
    if rc == native.SQLITE_ROW:
        return Err(TooManyResultsError().with_context(sql=stmt.sql))
    if rc != native.SQLITE_DONE:
        return Err(stmt.error(rc))
    return checked


def assert_query(conn: Connection | int, sql: str) -> Result[int]:
    """
    Evaluate ``sql`` as a boolean assertion.

    Args:
        conn: An open Connection or a raw connection handle
        sql: Query expected to yield one row with one INTEGER column in {0, 1}

    Returns:
        Ok(0) or Ok(1), otherwise Err carrying the shape or engine error
    """
    db = conn if isinstance(conn, int) else conn.handle
    prepared = prepare(db, sql)
    if prepared.is_err():
        return prepared

    with prepared.value as stmt:
        result = _evaluate(stmt)
        if result.is_err():
            logger.debug("assert_query_rejected", sql=sql, outcome=result.outcome.name)
            return result
        rc = stmt.close()
        if rc != native.SQLITE_OK:
            return Err(native.engine_error(rc, db, sql=sql))
        return result


__all__ = ["assert_query"]
