"""
Connection handle.

``Connection`` owns one engine connection handle, opened with
``SQLITE_OPEN_FULLMUTEX`` and closed exactly once. It prepares statements,
runs one-off statements and exposes the scalar assert helpers.

Extensions registered through ``sqlbridge.ext.register_extensions()`` apply
only to connections opened afterwards, so the module keeps a count of opens
for the registrar to warn on late registration.

Examples:
    >>> with Connection.open() as conn:
    ...     conn.execute("CREATE TABLE t(a TEXT NOT NULL)")
    ...     conn.check("SELECT count(*) = 0 FROM t")
    True
"""

from __future__ import annotations

import ctypes
import threading
from typing import Any

from sqlbridge.core.errors import AssertionFailedError, ContractViolation
from sqlbridge.core.logging import get_logger
from sqlbridge.core.result import Result
from sqlbridge.core.settings import get_settings
from sqlbridge.driver import native
from sqlbridge.driver.scalar import assert_query
from sqlbridge.driver.statement import Statement, prepare

logger = get_logger(__name__)

_opened = 0
_opened_lock = threading.Lock()


def connections_opened() -> int:
    """Number of connections opened by this process so far."""
    return _opened


class Connection:
    """One SQLite connection."""

    def __init__(self, handle: int, name: str):
        self._handle: int | None = handle
        self._name = name

    @classmethod
    def open(cls, name: str = ":memory:", *, uri: bool | None = None) -> Connection:
        """
        Open a connection, creating the database if needed.

        Args:
            name: File name, ``:memory:``, or a ``file:`` URI when ``uri`` is set
            uri: Interpret ``name`` as a URI (default: ``SQLBRIDGE_OPEN_URI``)

        Raises:
            EngineError: The engine refused to open the database
        """
        global _opened
        if uri is None:
            uri = get_settings().open_uri
        flags = native.SQLITE_OPEN_READWRITE | native.SQLITE_OPEN_CREATE | native.SQLITE_OPEN_FULLMUTEX
        if uri:
            flags |= native.SQLITE_OPEN_URI

        library = native.lib()
        handle = ctypes.c_void_p()
        rc = library.sqlite3_open_v2(name.encode("utf-8"), ctypes.byref(handle), flags, None)
        if rc != native.SQLITE_OK:
            error = native.engine_error(rc, handle.value).with_context(database=name)
            # A failed open may still allocate a handle
            if handle.value:
                library.sqlite3_close_v2(handle)
            logger.warning("connection_open_failed", **error.to_dict())
            raise error

        with _opened_lock:
            _opened += 1
        logger.debug("connection_opened", database=name)
        return cls(handle.value, name)

    @property
    def handle(self) -> int:
        if self._handle is None:
            raise ContractViolation("connection is closed").with_context(database=self._name)
        return self._handle

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._handle is None

    # ── Statements ───────────────────────────────────────────────

    def try_prepare(self, sql: str) -> Result[Statement]:
        return prepare(self.handle, sql)

    def prepare(self, sql: str) -> Statement:
        return self.try_prepare(sql).unwrap()

    def execute(self, sql: str) -> None:
        """Prepare, run and finalize one statement that returns no rows."""
        with self.prepare(sql) as stmt:
            stmt.exec()

    # ── Assertions ───────────────────────────────────────────────

    def assert_query(self, sql: str) -> Result[int]:
        return assert_query(self, sql)

    def check(self, sql: str) -> bool:
        """True when the assertion query yields 1, False when it yields 0."""
        return self.assert_query(sql).unwrap() == 1

    def require(self, sql: str, message: str | None = None) -> None:
        """Raise AssertionFailedError unless the assertion query yields 1."""
        if not self.check(sql):
            raise AssertionFailedError(message or f"assertion failed: {sql}").with_context(sql=sql)

    # ── Limits ───────────────────────────────────────────────────

    def limit(self, category: int, value: int = -1) -> int:
        """Set a run-time limit (``native.SQLITE_LIMIT_*``); returns the previous value.

        A negative ``value`` reads the limit without changing it.
        """
        previous = native.lib().sqlite3_limit(self.handle, category, value)
        if value >= 0:
            logger.debug("connection_limit_set", category=category, value=value, previous=previous)
        return previous

    # ── Lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        """Close the connection. Idempotent."""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        native.check(native.lib().sqlite3_close_v2(handle))
        logger.debug("connection_closed", database=self._name)

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Connection({self._name!r}, {state})"


__all__ = ["Connection", "connections_opened"]
