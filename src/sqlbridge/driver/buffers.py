"""
Owned value buffers and the batch container.

Every non-null column value on the insert path lives in an ``OwnedValue``:
a private NUL-terminated buffer with exactly one owner at a time. Binding
hands ownership to the engine, which later calls ``ENGINE_RELEASE`` (the one
destructor this library ever passes to ``sqlite3_bind_text``) to give it
back. Values that never reach the engine are released by the batch's single
unwinding routine.

Manifesto:
    - **Single owner:** host OR engine, never both, never neither
    - **Release exactly once:** a second release raises ``DoubleReleaseError``
    - **One cleanup routine:** ``Batch.release_remaining()`` is the only host-side
      unwinding path; ``Batch.close()`` runs it and closes the container once

Architecture:
    ::

        OwnedValue.state

          OWNED ──transfer()──► BOUND ──ENGINE_RELEASE──► RELEASED
            │                     │
            │                     └──bind failed: reclaim()──► RELEASED
            └──release()──────────────────────────────────────► RELEASED

        _engine_owned: {buffer address → OwnedValue}   (guarded by _engine_lock)

Examples:
    >>> batch = Batch(["a", None, "c", "d"])
    >>> len(batch), batch.remaining
    (4, 4)
    >>> batch.take().size
    1
    >>> batch.close()
    >>> batch.closed
    True
"""

from __future__ import annotations

import ctypes
import threading
from collections.abc import Callable, Iterable, Sequence
from enum import Enum

from sqlbridge.core.errors import ContractViolation, DoubleReleaseError
from sqlbridge.driver import native

ColumnValue = str | bytes | None
ReleaseHook = Callable[["OwnedValue"], None]


class ValueState(str, Enum):
    OWNED = "owned"
    BOUND = "bound"
    RELEASED = "released"


class OwnedValue:
    """
    One column value with explicit ownership.

    ``str`` is encoded to UTF-8; ``bytes`` are taken as already-encoded text.
    ``size`` is the byte length handed to the engine (the trailing NUL is not
    counted).
    """

    __slots__ = ("_buffer", "size", "state", "_on_release")

    def __init__(self, data: str | bytes, on_release: ReleaseHook | None = None):
        if isinstance(data, str):
            data = data.encode("utf-8")
        elif not isinstance(data, (bytes, bytearray)):
            raise ContractViolation(f"column values must be str, bytes or None, got {type(data).__name__}")
        self._buffer: ctypes.Array[ctypes.c_char] | None = ctypes.create_string_buffer(bytes(data))
        self.size = len(data)
        self.state = ValueState.OWNED
        self._on_release = on_release

    @property
    def address(self) -> int:
        if self._buffer is None:
            raise DoubleReleaseError("value buffer already released")
        return ctypes.addressof(self._buffer)

    @property
    def data(self) -> bytes:
        if self._buffer is None:
            raise DoubleReleaseError("value buffer already released")
        return self._buffer.raw[: self.size]

    def release(self) -> None:
        """Release a value the host still owns."""
        if self.state is ValueState.RELEASED:
            raise DoubleReleaseError("value released twice")
        if self.state is ValueState.BOUND:
            raise ContractViolation("value is owned by the engine")
        self._finish()

    def transfer(self) -> int:
        """Hand ownership to the engine; returns the buffer address to bind."""
        if self.state is not ValueState.OWNED:
            raise DoubleReleaseError(f"cannot transfer a {self.state.value} value")
        address = self.address
        with _engine_lock:
            _engine_owned[address] = self
        self.state = ValueState.BOUND
        return address

    def _finish(self) -> None:
        self._buffer = None
        self.state = ValueState.RELEASED
        if self._on_release is not None:
            self._on_release(self)

    def __repr__(self) -> str:
        return f"OwnedValue(size={self.size}, state={self.state.value})"


# =============================================================================
# ENGINE OWNERSHIP
# =============================================================================

_engine_owned: dict[int, OwnedValue] = {}
_engine_lock = threading.Lock()


def _take_back(address: int | None) -> OwnedValue | None:
    if not address:
        return None
    with _engine_lock:
        return _engine_owned.pop(address, None)


def _engine_release(address: int | None) -> None:
    value = _take_back(address)
    if value is not None:
        value._finish()


# The engine may call this from any thread, any number of statements later.
ENGINE_RELEASE = native.DESTRUCTOR(_engine_release)


def reclaim(value: OwnedValue) -> None:
    """Release a value whose bind failed, unless the engine already did."""
    if value.state is not ValueState.BOUND:
        return
    owned = _take_back(value.address)
    if owned is not None:
        owned._finish()


def engine_owned_count() -> int:
    """Number of buffers the engine currently holds."""
    with _engine_lock:
        return len(_engine_owned)


def bind_value(stmt_handle: int, position: int, value: OwnedValue | None) -> int:
    """
    Bind one value to a 1-based parameter position.

    ``None`` binds SQL NULL. Anything else transfers ownership to the engine
    for the duration of the bind; on a failed bind the value is released
    exactly once whichever side noticed first.
    """
    library = native.lib()
    if value is None:
        return library.sqlite3_bind_null(stmt_handle, position)

    address = value.transfer()
    rc = library.sqlite3_bind_text(stmt_handle, position, address, value.size, ENGINE_RELEASE)
    if rc != native.SQLITE_OK:
        reclaim(value)
    return rc


# =============================================================================
# BATCH
# =============================================================================


class Batch:
    """
    Ordered column values consumed by exactly one transfer.

    ``take()`` hands out values front to back. Whatever has not been taken
    when the transfer ends is released by ``release_remaining()``; the
    container itself is closed exactly once by ``close()``.

    ``on_release`` observes every release of every value, on either side of
    the boundary.
    """

    def __init__(self, values: Iterable[ColumnValue], *, on_release: ReleaseHook | None = None):
        self._values: list[OwnedValue | None] = [
            None if value is None else OwnedValue(value, on_release) for value in values
        ]
        self._cursor = 0
        self._closed = False

    @classmethod
    def of_rows(cls, rows: Iterable[Sequence[ColumnValue]], *, on_release: ReleaseHook | None = None) -> Batch:
        """Flatten rows into one batch, row-major."""
        return cls((value for row in rows for value in row), on_release=on_release)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def remaining(self) -> int:
        return len(self._values) - self._cursor

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def values(self) -> tuple[OwnedValue | None, ...]:
        return tuple(self._values)

    def take(self) -> OwnedValue | None:
        if self._closed:
            raise DoubleReleaseError("batch already closed")
        if self._cursor >= len(self._values):
            raise ContractViolation("batch exhausted")
        value = self._values[self._cursor]
        self._cursor += 1
        return value

    def release_remaining(self) -> int:
        """Release every value not yet taken; returns how many buffers were freed."""
        released = 0
        while self._cursor < len(self._values):
            value = self._values[self._cursor]
            self._cursor += 1
            if value is not None:
                value.release()
                released += 1
        return released

    def close(self) -> None:
        if self._closed:
            raise DoubleReleaseError("batch closed twice")
        try:
            self.release_remaining()
        finally:
            self._closed = True

    def __repr__(self) -> str:
        return f"Batch(len={len(self)}, remaining={self.remaining}, closed={self._closed})"


__all__ = [
    "ColumnValue",
    "ValueState",
    "OwnedValue",
    "ENGINE_RELEASE",
    "reclaim",
    "engine_owned_count",
    "bind_value",
    "Batch",
]
