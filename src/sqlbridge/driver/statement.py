"""
Prepared statement handle.

``Statement`` is the only owner of an engine statement handle. It exposes the
bind/step/reset/clear primitives the transfer layer drives, finalizes the
handle exactly once, and keeps a generation counter that borrowed ``Row``
views check before reading column memory.

Examples:
    >>> with conn.prepare("INSERT INTO t(a, b) VALUES (?, ?)") as stmt:
    ...     with stmt.loader() as loader:
    ...         loader.load(["x", "y"])
    >>> with conn.prepare("SELECT a FROM t") as stmt:
    ...     [row.text() for row in stmt.iter()]
    [('x',)]
"""

from __future__ import annotations

import ctypes
from typing import Any

from sqlbridge.core.errors import ContractViolation, EngineError, StatementFinalizedError
from sqlbridge.core.logging import get_logger
from sqlbridge.core.result import Err, Ok, Result
from sqlbridge.driver import native
from sqlbridge.driver.buffers import ColumnValue, OwnedValue, bind_value
from sqlbridge.driver.transfer import BulkLoader, RowIterator, subquery

logger = get_logger(__name__)


class Statement:
    """Capability-restricted wrapper around one prepared statement."""

    def __init__(self, handle: int, db: int, sql: str):
        self._handle: int | None = handle
        self._db = db
        self._sql = sql
        self._generation = 0
        library = native.lib()
        self._bind_count: int = library.sqlite3_bind_parameter_count(handle)
        self._column_count: int = library.sqlite3_column_count(handle)
        self._columns = tuple(
            (library.sqlite3_column_name(handle, i) or b"").decode("utf-8", "replace")
            for i in range(self._column_count)
        )

    # ── Properties ───────────────────────────────────────────────

    @property
    def handle(self) -> int:
        if self._handle is None:
            raise StatementFinalizedError("statement used after finalize").with_context(sql=self._sql)
        return self._handle

    @property
    def db(self) -> int:
        return self._db

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def closed(self) -> bool:
        return self._handle is None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def bind_count(self) -> int:
        return self._bind_count

    @property
    def column_count(self) -> int:
        return self._column_count

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def busy(self) -> bool:
        """True while the cursor is mid-result (stepped but not reset or done)."""
        return bool(native.lib().sqlite3_stmt_busy(self.handle))

    # ── Primitives ───────────────────────────────────────────────

    def bind(self, position: int, value: ColumnValue | OwnedValue) -> int:
        """Bind a value to a 1-based position; returns the engine status."""
        if not 1 <= position <= self._bind_count:
            raise ContractViolation(
                f"bind position {position} outside 1..{self._bind_count}"
            ).with_context(sql=self._sql)
        if value is not None and not isinstance(value, OwnedValue):
            value = OwnedValue(value)
        return bind_value(self.handle, position, value)

    def step(self) -> int:
        handle = self.handle
        self._generation += 1
        return native.lib().sqlite3_step(handle)

    def reset(self) -> int:
        handle = self.handle
        self._generation += 1
        return native.lib().sqlite3_reset(handle)

    def clear_bindings(self) -> int:
        return native.lib().sqlite3_clear_bindings(self.handle)

    def column_type(self, index: int) -> int:
        return native.lib().sqlite3_column_type(self.handle, index)

    def column_int(self, index: int) -> int:
        return native.lib().sqlite3_column_int64(self.handle, index)

    def column_buffer(self, index: int) -> tuple[int | None, int]:
        """Pointer and byte length of a column in the current row (NULL is ``(None, 0)``)."""
        library = native.lib()
        handle = self.handle
        if library.sqlite3_column_type(handle, index) == native.SQLITE_NULL:
            return None, 0
        pointer = library.sqlite3_column_text(handle, index)
        return pointer or 0, library.sqlite3_column_bytes(handle, index)

    def error(self, code: int) -> EngineError:
        """EngineError for ``code`` with this connection's current message."""
        return native.engine_error(code, self._db, sql=self._sql)

    # ── Host surface ─────────────────────────────────────────────

    def exec(self) -> None:
        """Run a statement that returns no rows, then reset it."""
        if self.column_count:
            raise ContractViolation("exec() on a statement with result columns").with_context(sql=self._sql)
        rc = self.step()
        if rc != native.SQLITE_DONE:
            error = self.error(rc)
            self.reset()
            raise error
        self.reset()

    def subquery(self) -> str | None:
        """The single value of a one-column query, or None for no row or NULL."""
        return subquery(self).map(lambda value: None if value is None else value.decode("utf-8")).unwrap()

    def loader(self, rows_per_flush: int | None = None, **kwargs: Any) -> BulkLoader:
        return BulkLoader(self, rows_per_flush=rows_per_flush, **kwargs)

    def iter(self) -> RowIterator:
        return RowIterator(self)

    def close(self) -> int:
        """Finalize the handle. Idempotent; returns the engine status of the first call."""
        if self._handle is None:
            return native.SQLITE_OK
        handle, self._handle = self._handle, None
        self._generation += 1
        return native.lib().sqlite3_finalize(handle)

    def __enter__(self) -> Statement:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Statement({self._sql!r}, {state})"


def prepare(db: int, sql: str) -> Result[Statement]:
    """
    Compile the first statement of ``sql`` on a raw connection handle.

    Empty SQL (or SQL that compiles to nothing, such as a lone comment) is a
    contract violation.
    """
    if not sql or not sql.strip():
        raise ContractViolation("empty SQL")

    encoded = sql.encode("utf-8")
    handle = ctypes.c_void_p()
    rc = native.lib().sqlite3_prepare_v2(db, encoded, len(encoded), ctypes.byref(handle), None)
    if rc != native.SQLITE_OK:
        error = native.engine_error(rc, db, sql=sql)
        if handle.value:
            native.lib().sqlite3_finalize(handle)
        logger.debug("prepare_failed", code=rc, message=error.message, sql=sql)
        return Err(error)
    if not handle.value:
        raise ContractViolation("SQL contains no statement").with_context(sql=sql)
    return Ok(Statement(handle.value, db, sql))


__all__ = ["Statement", "prepare"]
