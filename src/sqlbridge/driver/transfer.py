"""
Row transfer engine: bulk insert, bulk read and single-value subqueries.

This is the hot path of the binding layer. A batch of string-typed values
crosses the boundary once per call; each row is bound, stepped, cleared and
reset before the next one starts, so the statement leaves every cycle clean.

Manifesto:
    - **First error wins:** abort at the first non-success status, no retry
    - **Engine codes unchanged:** ``EngineError.code`` is what SQLite returned
    - **No rollback:** rows stepped before a failure stay; the caller owns
      transaction scope
    - **Every exit releases:** one ``finally`` releases untaken values and
      closes the batch

Architecture:
    ::

        bulk_insert(stmt, arity, batch)
          ├─ contract checks ──────────── ContractViolation (raised)
          ├─ for row in range(len // arity):
          │     bind 1..arity ─► step (DONE) ─► clear_bindings ─► reset
          │        │               │              │                 │
          │        └───────────────┴──────────────┴─────────────────┴─► Err(EngineError)
          └─ finally: batch.close()   (release_remaining + close once)

        bulk_read(stmt)   step ─► DONE: Ok(None) │ ROW: Ok(Row) │ else Err
        subquery(stmt)    step ─► copy column 0 ─► reset

Examples:
    >>> batch = Batch(["1", "one", "2", None])
    >>> bulk_insert(stmt, 2, batch)
    Ok(2)

    >>> match bulk_read(select):
    ...     case Ok(None):
    ...         print("done")
    ...     case Ok(row):
    ...         print(row.text())
    ...     case Err(error):
    ...         print(error.code)

Guardrails:
    ❌ DON'T: Keep a Row after calling step/reset on its statement
    ✅ DO: ``row.copy()`` or ``row.text()`` to retain values

    ❌ DON'T: Reuse a Batch across calls
    ✅ DO: Build a new Batch per bulk_insert; the call closes it
"""

from __future__ import annotations

import ctypes
from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from sqlbridge.core.errors import ContractViolation, StaleRowError, WrongColumnCountError
from sqlbridge.core.logging import get_logger
from sqlbridge.core.result import Err, Ok, Result
from sqlbridge.core.settings import get_settings
from sqlbridge.driver import native
from sqlbridge.driver.buffers import Batch, ColumnValue, ReleaseHook

if TYPE_CHECKING:
    from sqlbridge.driver.statement import Statement

logger = get_logger(__name__)


# =============================================================================
# BULK INSERT
# =============================================================================


def _check_insert_contract(stmt: Statement, arity: int, batch: Batch) -> None:
    if batch.closed:
        raise ContractViolation("batch already consumed")
    if stmt.closed:
        raise ContractViolation("statement is finalized").with_context(sql=stmt.sql)
    if stmt.busy:
        raise ContractViolation("statement has an active cursor").with_context(sql=stmt.sql)
    if stmt.bind_count < 1:
        raise ContractViolation("statement has no bind parameters").with_context(sql=stmt.sql)
    if arity <= 0:
        raise ContractViolation(f"arity must be positive, got {arity}")
    if arity != stmt.bind_count:
        raise ContractViolation(
            f"arity {arity} does not match the statement's {stmt.bind_count} parameters"
        ).with_context(sql=stmt.sql)
    if len(batch) == 0:
        raise ContractViolation("empty batch")
    if len(batch) % arity != 0:
        raise ContractViolation(f"batch of {len(batch)} values is not a multiple of arity {arity}")


def _insert_failed(stmt: Statement, code: int, row: int, phase: str, column: int | None = None) -> Err[int]:
    error = stmt.error(code).with_context(row=row, column=column, phase=phase)
    # Leave the statement clean; the first error is the one reported.
    stmt.reset()
    stmt.clear_bindings()
    logger.warning("bulk_insert_failed", **error.to_dict())
    return Err(error)


def bulk_insert(stmt: Statement, arity: int, batch: Batch) -> Result[int]:
    """
    Insert ``len(batch) // arity`` rows through one prepared statement.

    ``arity`` must equal the statement's parameter count. Values bind to
    positions ``1..arity`` row by row; ``None`` binds SQL NULL. Returns
    ``Ok(rows)`` or the first ``Err(EngineError)``, whose context carries the
    0-based row index and the phase (bind, step, clear or reset) that failed.
    A bind failure also records the 1-based parameter position as
    ``column``. Rows stepped before the failure are not rolled back.

    The batch is consumed on every path, including contract violations.
    """
    try:
        _check_insert_contract(stmt, arity, batch)
        rows = len(batch) // arity

        for row in range(rows):
            for position in range(1, arity + 1):
                rc = stmt.bind(position, batch.take())
                if rc != native.SQLITE_OK:
                    return _insert_failed(stmt, rc, row, "bind", column=position)

            rc = stmt.step()
            if rc != native.SQLITE_DONE:
                return _insert_failed(stmt, rc, row, "step")

            rc = stmt.clear_bindings()
            if rc != native.SQLITE_OK:
                return _insert_failed(stmt, rc, row, "clear")

            rc = stmt.reset()
            if rc != native.SQLITE_OK:
                return _insert_failed(stmt, rc, row, "reset")

        logger.debug("bulk_insert_complete", rows=rows, arity=arity)
        return Ok(rows)
    finally:
        if not batch.closed:
            batch.close()


# =============================================================================
# BULK READ
# =============================================================================


class Row:
    """
    Borrowed view of a statement's current row.

    Column memory belongs to the statement and is valid only until it steps,
    resets or finalizes. Every accessor checks the statement generation and
    raises ``StaleRowError`` once the view has expired.
    """

    __slots__ = ("_stmt", "_generation", "_cells")

    def __init__(self, stmt: Statement, cells: Sequence[tuple[int | None, int]]):
        self._stmt = stmt
        self._generation = stmt.generation
        self._cells = tuple(cells)

    @classmethod
    def capture(cls, stmt: Statement) -> Row:
        return cls(stmt, [stmt.column_buffer(i) for i in range(stmt.column_count)])

    @property
    def valid(self) -> bool:
        return not self._stmt.closed and self._stmt.generation == self._generation

    @property
    def columns(self) -> tuple[str, ...]:
        return self._stmt.columns

    def _check(self) -> None:
        if not self.valid:
            raise StaleRowError("row read after its statement advanced").with_context(sql=self._stmt.sql)

    def raw(self, index: int) -> bytes | None:
        """Bytes of one column; None for SQL NULL."""
        self._check()
        pointer, size = self._cells[index]
        if pointer is None:
            return None
        return ctypes.string_at(pointer, size) if size else b""

    def copy(self) -> tuple[bytes | None, ...]:
        """Copy every column out of engine memory."""
        return tuple(self.raw(i) for i in range(len(self._cells)))

    def text(self) -> tuple[str | None, ...]:
        return tuple(None if value is None else value.decode("utf-8") for value in self.copy())

    def as_dict(self) -> dict[str, str | None]:
        return dict(zip(self.columns, self.text()))

    def __len__(self) -> int:
        return len(self._cells)

    def __getitem__(self, index: int) -> str | None:
        value = self.raw(index)
        return None if value is None else value.decode("utf-8")

    def __repr__(self) -> str:
        if not self.valid:
            return f"Row(<stale>, columns={len(self._cells)})"
        return f"Row({self.text()!r})"


def bulk_read(stmt: Statement) -> Result[Row | None]:
    """
    Step once and borrow the resulting row.

    ``Ok(None)`` when the statement is done, ``Ok(Row)`` for a row, or the
    engine's status verbatim as ``Err(EngineError)``.
    """
    if stmt.column_count == 0:
        raise ContractViolation("statement has no result columns").with_context(sql=stmt.sql)

    rc = stmt.step()
    if rc == native.SQLITE_DONE:
        return Ok(None)
    if rc != native.SQLITE_ROW:
        error = stmt.error(rc)
        logger.warning("bulk_read_failed", **error.to_dict())
        return Err(error)
    return Ok(Row.capture(stmt))


# =============================================================================
# SUBQUERY
# =============================================================================


def subquery(stmt: Statement) -> Result[bytes | None]:
    """
    Run a one-column query and copy out its first value.

    ``Ok(None)`` for no row or a NULL value. The value is copied before the
    statement is reset, since reset invalidates the row buffer.
    """
    count = stmt.column_count
    if count == 0:
        raise ContractViolation("statement has no result columns").with_context(sql=stmt.sql)
    if count > 1:
        return Err(WrongColumnCountError(1, count).with_context(sql=stmt.sql))

    rc = stmt.step()
    if rc == native.SQLITE_DONE:
        stmt.reset()
        return Ok(None)
    if rc != native.SQLITE_ROW:
        error = stmt.error(rc)
        stmt.reset()
        return Err(error)

    pointer, size = stmt.column_buffer(0)
    if pointer is None:
        value = None
    else:
        value = ctypes.string_at(pointer, size) if size else b""
    stmt.reset()
    return Ok(value)


# =============================================================================
# HOST-FACING HELPERS
# =============================================================================


class BulkLoader:
    """
    Queue rows and push them through ``bulk_insert`` in batches.

    Every row must supply exactly ``stmt.bind_count`` values. A batch is
    flushed every ``rows_per_flush`` rows (``SQLBRIDGE_ROWS_PER_FLUSH``,
    default 16) and on ``flush()``/``close()``; an empty batch is never
    flushed. Engine failures raise ``EngineError``.

    Example:
        with stmt.loader() as loader:
            for record in records:
                loader.load([record.id, record.name])
        loader.rows_loaded
    """

    def __init__(
        self,
        stmt: Statement,
        rows_per_flush: int | None = None,
        *,
        on_release: ReleaseHook | None = None,
    ):
        if rows_per_flush is None:
            rows_per_flush = get_settings().rows_per_flush
        if rows_per_flush < 1:
            raise ContractViolation(f"rows_per_flush must be positive, got {rows_per_flush}")
        if stmt.bind_count < 1:
            raise ContractViolation("statement has no bind parameters").with_context(sql=stmt.sql)
        self._stmt = stmt
        self._rows_per_flush = rows_per_flush
        self._on_release = on_release
        self._pending: list[ColumnValue] = []
        self._pending_rows = 0
        self._rows_loaded = 0
        self._closed = False

    @property
    def rows_loaded(self) -> int:
        return self._rows_loaded

    @property
    def pending_rows(self) -> int:
        return self._pending_rows

    def load(self, row: Sequence[ColumnValue]) -> None:
        if self._closed:
            raise ContractViolation("loader is closed")
        if len(row) != self._stmt.bind_count:
            raise ContractViolation(
                f"row has {len(row)} values, statement takes {self._stmt.bind_count}"
            ).with_context(sql=self._stmt.sql)
        self._pending.extend(row)
        self._pending_rows += 1
        if self._pending_rows >= self._rows_per_flush:
            self.flush()

    def load_many(self, rows: Iterable[Sequence[ColumnValue]]) -> None:
        for row in rows:
            self.load(row)

    def flush(self) -> int:
        """Insert queued rows now; returns how many were inserted."""
        if not self._pending:
            return 0
        batch = Batch(self._pending, on_release=self._on_release)
        self._pending = []
        self._pending_rows = 0
        inserted = bulk_insert(self._stmt, self._stmt.bind_count, batch).unwrap()
        self._rows_loaded += inserted
        logger.debug("loader_flush", rows=inserted, total=self._rows_loaded)
        return inserted

    def discard(self) -> int:
        """Drop queued rows without inserting them."""
        dropped = self._pending_rows
        self._pending = []
        self._pending_rows = 0
        return dropped

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True

    def __enter__(self) -> BulkLoader:
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        if exc_type is not None:
            self.discard()
            self._closed = True
            return
        self.close()


class RowIterator:
    """
    Iterate a parameterless query as borrowed rows.

    Each yielded ``Row`` expires when the next one is requested. The
    statement is reset once the result set is exhausted.
    """

    def __init__(self, stmt: Statement):
        if stmt.bind_count:
            raise ContractViolation("cannot iterate a statement with bind parameters").with_context(sql=stmt.sql)
        if stmt.column_count == 0:
            raise ContractViolation("statement has no result columns").with_context(sql=stmt.sql)
        self._stmt = stmt
        self._done = False

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        if self._done:
            raise StopIteration
        result = bulk_read(self._stmt)
        if result.is_err():
            self._done = True
            self._stmt.reset()
            raise result.error
        if result.value is None:
            self._done = True
            self._stmt.reset()
            raise StopIteration
        return result.value

    def texts(self) -> Iterator[tuple[str | None, ...]]:
        """Iterate copied rows decoded as text."""
        for row in self:
            yield row.text()


__all__ = [
    "bulk_insert",
    "bulk_read",
    "subquery",
    "Row",
    "BulkLoader",
    "RowIterator",
]
