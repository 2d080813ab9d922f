"""
Callback plumbing shared by the SQL extensions.

``ScalarFunction`` adapts a plain Python function to the engine's scalar
function signature; ``Extension`` adapts an install routine to the
auto-extension entry point signature. Both convert every Python exception
into an engine status or a function error, since nothing may propagate
through a native frame.

Examples:
    >>> def shout(text):
    ...     return None if text is None else text.upper()
    >>> SHOUT = ScalarFunction("shout", 1, shout)
    >>> EXTENSION = Extension("shout", SHOUT.register)
"""

from __future__ import annotations

import ctypes
from collections.abc import Callable
from typing import Any

from sqlbridge.core.logging import get_logger
from sqlbridge.driver import native

logger = get_logger(__name__)

SqlValue = int | float | str | bytes | None


# =============================================================================
# VALUES
# =============================================================================


def value_of(pointer: int) -> SqlValue:
    """Decode one ``sqlite3_value *`` into a Python value."""
    library = native.lib()
    kind = library.sqlite3_value_type(pointer)
    if kind == native.SQLITE_NULL:
        return None
    if kind == native.SQLITE_INTEGER:
        return library.sqlite3_value_int64(pointer)
    if kind == native.SQLITE_FLOAT:
        return library.sqlite3_value_double(pointer)
    if kind == native.SQLITE_BLOB:
        data = library.sqlite3_value_blob(pointer)
        size = library.sqlite3_value_bytes(pointer)
        return ctypes.string_at(data, size) if data else b""
    text = library.sqlite3_value_text(pointer)
    size = library.sqlite3_value_bytes(pointer)
    return ctypes.string_at(text, size).decode("utf-8") if text else ""


def int_value_of(pointer: int) -> int | None:
    """Integer affinity read (the engine's own coercion); None for NULL."""
    library = native.lib()
    if library.sqlite3_value_type(pointer) == native.SQLITE_NULL:
        return None
    return library.sqlite3_value_int64(pointer)


def arguments(argc: int, argv: Any) -> list[SqlValue]:
    return [value_of(argv[i]) for i in range(argc)]


def set_result(context: int, value: SqlValue) -> None:
    library = native.lib()
    if value is None:
        library.sqlite3_result_null(context)
    elif isinstance(value, bool | int):
        library.sqlite3_result_int64(context, int(value))
    elif isinstance(value, float):
        library.sqlite3_result_double(context, value)
    elif isinstance(value, str):
        data = value.encode("utf-8")
        library.sqlite3_result_text(context, data, len(data), native.SQLITE_TRANSIENT)
    elif isinstance(value, bytes):
        library.sqlite3_result_blob(context, value, len(value), native.SQLITE_TRANSIENT)
    else:
        raise TypeError(f"unsupported result type {type(value).__name__}")


def set_error(context: int, message: str) -> None:
    data = message.encode("utf-8")
    native.lib().sqlite3_result_error(context, data, len(data))


def guarded(name: str, function: Callable[..., int]) -> Callable[..., int]:
    """Wrap a native callback so exceptions become SQLITE_ERROR."""

    def callback(*args: Any) -> int:
        try:
            return function(*args)
        except Exception:
            logger.exception("native_callback_failed", callback=name)
            return native.SQLITE_ERROR

    callback.__name__ = name
    return callback


# =============================================================================
# SCALAR FUNCTIONS
# =============================================================================


class ScalarFunction:
    """
    A Python function callable from SQL.

    ``nargs`` of -1 accepts any argument count. With ``with_db`` the function
    receives the calling connection's raw handle as its first argument, for
    functions that run nested queries.
    """

    def __init__(
        self,
        name: str,
        nargs: int,
        function: Callable[..., SqlValue],
        *,
        deterministic: bool = True,
        with_db: bool = False,
    ):
        self.name = name
        self.nargs = nargs
        self.function = function
        self.deterministic = deterministic
        self.with_db = with_db
        self.callback = native.SCALAR_FUNC(self._call)

    def _call(self, context: int, argc: int, argv: Any) -> None:
        try:
            args = arguments(argc, argv)
            if self.with_db:
                args.insert(0, native.lib().sqlite3_context_db_handle(context))
            set_result(context, self.function(*args))
        except Exception as e:
            logger.warning("sql_function_failed", function=self.name, error=str(e))
            set_error(context, f"{self.name}(): {e}")

    def register(self, db: int) -> int:
        flags = native.SQLITE_UTF8
        if self.deterministic:
            flags |= native.SQLITE_DETERMINISTIC
        return native.lib().sqlite3_create_function_v2(
            db, self.name.encode("utf-8"), self.nargs, flags, None, self.callback, None, None, None
        )

    def __repr__(self) -> str:
        return f"ScalarFunction({self.name!r}, nargs={self.nargs})"


def register_all(db: int, *functions: ScalarFunction) -> int:
    """Register functions in order; stop at the first failure."""
    for function in functions:
        rc = function.register(db)
        if rc != native.SQLITE_OK:
            return rc
    return native.SQLITE_OK


# =============================================================================
# EXTENSIONS
# =============================================================================


class Extension:
    """An install routine exposed as an auto-extension entry point."""

    def __init__(self, name: str, install: Callable[[int], int]):
        self.name = name
        self._install = install
        self.entry_point = native.ENTRY_POINT(guarded(f"{name}_init", self._entry))

    @property
    def address(self) -> int:
        return ctypes.cast(self.entry_point, ctypes.c_void_p).value

    def _entry(self, db: int, error_message: Any, api: int) -> int:
        rc = self._install(db)
        if rc != native.SQLITE_OK:
            logger.warning("extension_init_failed", extension=self.name, code=rc)
        return rc

    def install(self, db: int) -> int:
        """Install directly on one open connection."""
        return self._install(db)

    def __repr__(self) -> str:
        return f"Extension({self.name!r})"


__all__ = [
    "SqlValue",
    "value_of",
    "int_value_of",
    "arguments",
    "set_result",
    "set_error",
    "guarded",
    "ScalarFunction",
    "register_all",
    "Extension",
]
