"""
Native SQLite library binding.

Locates the SQLite shared library, declares the prototype of every engine
entry point the binding layer calls, and exposes the engine's status-code
constants together with helpers that turn a status into an ``EngineError``.

Nothing above this module touches ``ctypes.CDLL`` directly; everything goes
through ``lib()``, which loads and prototypes the library once per process.

Architecture:
    ::

        lib()
          │  (first call, under _load_lock)
          ▼
        candidate_paths()
          1. SqlBridgeSettings.library_path   (SQLBRIDGE_LIBRARY_PATH)
          2. ctypes.util.find_library("sqlite3")
          3. the interpreter's own _sqlite3 extension module
          │
          ▼
        load_library(path)  →  CDLL + _PROTOTYPES applied
          │
          ▼
        cached CDLL  ──►  statement / connection / buffers / ext

Callback types:
    DESTRUCTOR      void (*)(void *)                       buffer release
    ENTRY_POINT     int (*)(sqlite3 *, char **, const void *)  auto-extension
    SCALAR_FUNC     void (*)(sqlite3_context *, int, sqlite3_value **)

Guardrails:
    ❌ DON'T: Let a Python exception escape a CFUNCTYPE callback
    ✅ DO: Catch at the callback boundary and return an engine status

    ❌ DON'T: Create callback objects inside a function and drop them
    ✅ DO: Keep every callback handed to the engine referenced at module level

Tags:
    ctypes, ffi, sqlite3, native-boundary
"""

from __future__ import annotations

import ctypes
import ctypes.util
import importlib.util
import threading
from ctypes import (
    CFUNCTYPE,
    POINTER,
    c_char_p,
    c_double,
    c_int,
    c_int64,
    c_void_p,
)
from typing import Any

from sqlbridge.core.errors import EngineError, ErrorContext, LibraryLoadError
from sqlbridge.core.logging import get_logger
from sqlbridge.core.settings import get_settings

logger = get_logger(__name__)


# =============================================================================
# STATUS CODES AND FLAGS
# =============================================================================

SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_NOMEM = 7
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISUSE = 21
SQLITE_ROW = 100
SQLITE_DONE = 101

# Fundamental datatypes
SQLITE_INTEGER = 1
SQLITE_FLOAT = 2
SQLITE_TEXT = 3
SQLITE_BLOB = 4
SQLITE_NULL = 5

TYPE_NAMES = {
    SQLITE_INTEGER: "INTEGER",
    SQLITE_FLOAT: "FLOAT",
    SQLITE_TEXT: "TEXT",
    SQLITE_BLOB: "BLOB",
    SQLITE_NULL: "NULL",
}

SQLITE_UTF8 = 1
SQLITE_DETERMINISTIC = 0x800

SQLITE_OPEN_READWRITE = 0x00000002
SQLITE_OPEN_CREATE = 0x00000004
SQLITE_OPEN_URI = 0x00000040
SQLITE_OPEN_FULLMUTEX = 0x00010000

# Run-time limit categories
SQLITE_LIMIT_LENGTH = 0

# Virtual table constraint operator
SQLITE_INDEX_CONSTRAINT_EQ = 2

# Engine copies the value before the call returns
SQLITE_TRANSIENT = c_void_p(-1)


# =============================================================================
# CALLBACK TYPES
# =============================================================================

DESTRUCTOR = CFUNCTYPE(None, c_void_p)
ENTRY_POINT = CFUNCTYPE(c_int, c_void_p, POINTER(c_char_p), c_void_p)
SCALAR_FUNC = CFUNCTYPE(None, c_void_p, c_int, POINTER(c_void_p))


# =============================================================================
# PROTOTYPES
# =============================================================================

_PROTOTYPES: dict[str, tuple[Any, list[Any]]] = {
    # Library
    "sqlite3_libversion": (c_char_p, []),
    "sqlite3_errstr": (c_char_p, [c_int]),
    "sqlite3_errmsg": (c_char_p, [c_void_p]),
    # Connections
    "sqlite3_open_v2": (c_int, [c_char_p, POINTER(c_void_p), c_int, c_char_p]),
    "sqlite3_close_v2": (c_int, [c_void_p]),
    "sqlite3_limit": (c_int, [c_void_p, c_int, c_int]),
    # Statements
    "sqlite3_prepare_v2": (c_int, [c_void_p, c_char_p, c_int, POINTER(c_void_p), POINTER(c_void_p)]),
    "sqlite3_finalize": (c_int, [c_void_p]),
    "sqlite3_stmt_busy": (c_int, [c_void_p]),
    "sqlite3_bind_parameter_count": (c_int, [c_void_p]),
    "sqlite3_bind_text": (c_int, [c_void_p, c_int, c_void_p, c_int, c_void_p]),
    "sqlite3_bind_null": (c_int, [c_void_p, c_int]),
    "sqlite3_step": (c_int, [c_void_p]),
    "sqlite3_reset": (c_int, [c_void_p]),
    "sqlite3_clear_bindings": (c_int, [c_void_p]),
    "sqlite3_column_count": (c_int, [c_void_p]),
    "sqlite3_column_name": (c_char_p, [c_void_p, c_int]),
    "sqlite3_column_type": (c_int, [c_void_p, c_int]),
    "sqlite3_column_text": (c_void_p, [c_void_p, c_int]),
    "sqlite3_column_bytes": (c_int, [c_void_p, c_int]),
    "sqlite3_column_int64": (c_int64, [c_void_p, c_int]),
    # Extensions
    "sqlite3_auto_extension": (c_int, [c_void_p]),
    "sqlite3_reset_auto_extension": (None, []),
    "sqlite3_create_function_v2": (
        c_int,
        [c_void_p, c_char_p, c_int, c_int, c_void_p, SCALAR_FUNC, c_void_p, c_void_p, c_void_p],
    ),
    "sqlite3_create_module": (c_int, [c_void_p, c_char_p, c_void_p, c_void_p]),
    "sqlite3_declare_vtab": (c_int, [c_void_p, c_char_p]),
    "sqlite3_context_db_handle": (c_void_p, [c_void_p]),
    # Function arguments
    "sqlite3_value_type": (c_int, [c_void_p]),
    "sqlite3_value_int64": (c_int64, [c_void_p]),
    "sqlite3_value_double": (c_double, [c_void_p]),
    "sqlite3_value_text": (c_void_p, [c_void_p]),
    "sqlite3_value_blob": (c_void_p, [c_void_p]),
    "sqlite3_value_bytes": (c_int, [c_void_p]),
    # Function results
    "sqlite3_result_null": (None, [c_void_p]),
    "sqlite3_result_int64": (None, [c_void_p, c_int64]),
    "sqlite3_result_double": (None, [c_void_p, c_double]),
    "sqlite3_result_text": (None, [c_void_p, c_char_p, c_int, c_void_p]),
    "sqlite3_result_blob": (None, [c_void_p, c_char_p, c_int, c_void_p]),
    "sqlite3_result_error": (None, [c_void_p, c_char_p, c_int]),
}


# =============================================================================
# LOADING
# =============================================================================

_lib: ctypes.CDLL | None = None
_load_lock = threading.Lock()


def candidate_paths() -> list[str]:
    """Library locations to try, in order."""
    paths: list[str] = []
    configured = get_settings().library_path
    if configured is not None:
        paths.append(str(configured))
    found = ctypes.util.find_library("sqlite3")
    if found:
        paths.append(found)
    spec = importlib.util.find_spec("_sqlite3")
    if spec is not None and spec.origin:
        paths.append(spec.origin)
    return paths


def load_library(path: str) -> ctypes.CDLL:
    """Load one library and apply every prototype to it."""
    try:
        library = ctypes.CDLL(path)
    except OSError as e:
        raise LibraryLoadError(f"cannot load {path}", cause=e) from e

    for name, (restype, argtypes) in _PROTOTYPES.items():
        try:
            function = getattr(library, name)
        except AttributeError as e:
            raise LibraryLoadError(f"{path} does not export {name}", cause=e) from e
        function.restype = restype
        function.argtypes = argtypes
    return library


def lib() -> ctypes.CDLL:
    """Return the process-wide SQLite library, loading it on first use."""
    global _lib
    if _lib is not None:
        return _lib

    with _load_lock:
        if _lib is not None:
            return _lib

        paths = candidate_paths()
        failures: list[str] = []
        for path in paths:
            try:
                library = load_library(path)
            except LibraryLoadError as e:
                failures.append(e.message)
                continue
            _lib = library
            logger.debug(
                "sqlite_library_loaded",
                path=path,
                version=library.sqlite3_libversion().decode(),
            )
            return _lib

        raise LibraryLoadError(
            "no usable SQLite library found",
        ).with_context(searched=paths, failures=failures)


def libversion() -> str:
    return lib().sqlite3_libversion().decode()


# =============================================================================
# STATUS HELPERS
# =============================================================================


def errstr(code: int) -> str:
    """English description of a status code."""
    text = lib().sqlite3_errstr(code)
    return text.decode("utf-8", "replace") if text else f"sqlite status {code}"


def errmsg(db: int | None) -> str | None:
    """Most recent error message recorded on a connection handle."""
    if not db:
        return None
    text = lib().sqlite3_errmsg(db)
    return text.decode("utf-8", "replace") if text else None


def engine_error(code: int, db: int | None = None, *, sql: str | None = None) -> EngineError:
    """Build an EngineError carrying ``code`` exactly as the engine returned it."""
    return EngineError(
        code,
        errmsg(db),
        code_name=errstr(code),
        context=ErrorContext(sql=sql),
    )


def check(code: int, db: int | None = None, *, sql: str | None = None) -> None:
    """Raise EngineError unless ``code`` is SQLITE_OK."""
    if code != SQLITE_OK:
        raise engine_error(code, db, sql=sql)


__all__ = [
    "SQLITE_OK",
    "SQLITE_ERROR",
    "SQLITE_NOMEM",
    "SQLITE_CONSTRAINT",
    "SQLITE_MISUSE",
    "SQLITE_ROW",
    "SQLITE_DONE",
    "SQLITE_INTEGER",
    "SQLITE_FLOAT",
    "SQLITE_TEXT",
    "SQLITE_BLOB",
    "SQLITE_NULL",
    "TYPE_NAMES",
    "SQLITE_UTF8",
    "SQLITE_DETERMINISTIC",
    "SQLITE_OPEN_READWRITE",
    "SQLITE_OPEN_CREATE",
    "SQLITE_OPEN_URI",
    "SQLITE_OPEN_FULLMUTEX",
    "SQLITE_INDEX_CONSTRAINT_EQ",
    "SQLITE_TRANSIENT",
    "DESTRUCTOR",
    "ENTRY_POINT",
    "SCALAR_FUNC",
    "candidate_paths",
    "load_library",
    "lib",
    "libversion",
    "errstr",
    "errmsg",
    "engine_error",
    "check",
]
