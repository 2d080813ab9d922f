"""
``generate_series(start[, stop[, step]])`` eponymous table-valued function.

One visible column ``value`` plus hidden ``start``, ``stop`` and ``step``
columns that take the function arguments. ``stop`` defaults to 4294967295
and ``step`` to 1; a zero step is treated as 1. A positive step counts up
from ``start`` while ``value <= stop``. A negative step walks the same
terms ``start + k*|step|`` in descending order, so ``generate_series(1, 10,
-2)`` yields 9, 7, 5, 3, 1 and ``generate_series(10, 1, -3)`` is empty.
With any NULL argument the series is empty. A missing ``start`` also gives
an empty series rather than defaulting to 0 the way older SQLite builds of
this function do.

Architecture:
    ::

        sqlite3_module (MODULE, iVersion 0, xCreate NULL → eponymous only)
          xConnect     declare_vtab(SCHEMA), allocate sqlite3_vtab
          xBestIndex   EQ constraints on start/stop/step → idxNum bits 1/2/4
          xOpen        allocate a _Cursor keyed by its base struct address
          xFilter      read arguments per idxNum, position at start
          xNext/xEof   advance by step / range check
          xColumn      value, start, stop, step
          xRowid       1-based row counter

Examples:
    >>> [row.text() for row in conn.prepare("SELECT value FROM generate_series(1, 3)").iter()]
    [('1',), ('2',), ('3',)]
"""

from __future__ import annotations

import ctypes
from ctypes import CFUNCTYPE, POINTER, Structure, c_char_p, c_double, c_int, c_int64, c_ubyte, c_uint64, c_void_p
from typing import Any

from sqlbridge.driver import native
from sqlbridge.ext.functions import Extension, guarded, int_value_of

SCHEMA = b"CREATE TABLE x(value, start HIDDEN, stop HIDDEN, step HIDDEN)"

DEFAULT_STOP = 4294967295
DEFAULT_STEP = 1

COLUMN_VALUE = 0
COLUMN_START = 1
COLUMN_STOP = 2
COLUMN_STEP = 3

HAS_START = 1
HAS_STOP = 2
HAS_STEP = 4


# =============================================================================
# ENGINE STRUCTURES
# =============================================================================


class sqlite3_vtab(Structure):
    _fields_ = [
        ("pModule", c_void_p),
        ("nRef", c_int),
        ("zErrMsg", c_void_p),
    ]


class sqlite3_vtab_cursor(Structure):
    _fields_ = [("pVtab", c_void_p)]


class sqlite3_index_constraint(Structure):
    _fields_ = [
        ("iColumn", c_int),
        ("op", c_ubyte),
        ("usable", c_ubyte),
        ("iTermOffset", c_int),
    ]


class sqlite3_index_orderby(Structure):
    _fields_ = [
        ("iColumn", c_int),
        ("desc", c_ubyte),
    ]


class sqlite3_index_constraint_usage(Structure):
    _fields_ = [
        ("argvIndex", c_int),
        ("omit", c_ubyte),
    ]


class sqlite3_index_info(Structure):
    _fields_ = [
        ("nConstraint", c_int),
        ("aConstraint", POINTER(sqlite3_index_constraint)),
        ("nOrderBy", c_int),
        ("aOrderBy", POINTER(sqlite3_index_orderby)),
        ("aConstraintUsage", POINTER(sqlite3_index_constraint_usage)),
        ("idxNum", c_int),
        ("idxStr", c_char_p),
        ("needToFreeIdxStr", c_int),
        ("orderByConsumed", c_int),
        ("estimatedCost", c_double),
        ("estimatedRows", c_int64),
        ("idxFlags", c_int),
        ("colUsed", c_uint64),
    ]


X_CONNECT = CFUNCTYPE(c_int, c_void_p, c_void_p, c_int, c_void_p, POINTER(c_void_p), c_void_p)
X_BEST_INDEX = CFUNCTYPE(c_int, c_void_p, POINTER(sqlite3_index_info))
X_VTAB = CFUNCTYPE(c_int, c_void_p)
X_OPEN = CFUNCTYPE(c_int, c_void_p, POINTER(c_void_p))
X_CURSOR = CFUNCTYPE(c_int, c_void_p)
X_FILTER = CFUNCTYPE(c_int, c_void_p, c_int, c_void_p, c_int, POINTER(c_void_p))
X_COLUMN = CFUNCTYPE(c_int, c_void_p, c_void_p, c_int)
X_ROWID = CFUNCTYPE(c_int, c_void_p, POINTER(c_int64))


class sqlite3_module(Structure):
    _fields_ = [
        ("iVersion", c_int),
        ("xCreate", X_CONNECT),
        ("xConnect", X_CONNECT),
        ("xBestIndex", X_BEST_INDEX),
        ("xDisconnect", X_VTAB),
        ("xDestroy", X_VTAB),
        ("xOpen", X_OPEN),
        ("xClose", X_CURSOR),
        ("xFilter", X_FILTER),
        ("xNext", X_CURSOR),
        ("xEof", X_CURSOR),
        ("xColumn", X_COLUMN),
        ("xRowid", X_ROWID),
        ("xUpdate", c_void_p),
        ("xBegin", c_void_p),
        ("xSync", c_void_p),
        ("xCommit", c_void_p),
        ("xRollback", c_void_p),
        ("xFindFunction", c_void_p),
        ("xRename", c_void_p),
        ("xSavepoint", c_void_p),
        ("xRelease", c_void_p),
        ("xRollbackTo", c_void_p),
        ("xShadowName", c_void_p),
        ("xIntegrity", c_void_p),
    ]


# =============================================================================
# SERIES STATE
# =============================================================================


class _Cursor:
    __slots__ = ("base", "value", "start", "stop", "step", "rowid", "eof")

    def __init__(self) -> None:
        self.base = sqlite3_vtab_cursor()
        self.value = 0
        self.start = 0
        self.stop = DEFAULT_STOP
        self.step = DEFAULT_STEP
        self.rowid = 1
        self.eof = True

    def position(self, start: int, stop: int, step: int) -> None:
        self.start = start
        self.stop = stop
        self.step = step or DEFAULT_STEP
        self.rowid = 1
        if self.step > 0:
            self.value = start
        else:
            # Descending: begin at the last term of start + k*|step| not above stop
            span = stop - start
            self.value = start + (span // -self.step) * -self.step if span >= 0 else start - 1
        self._check()

    def advance(self) -> None:
        self.value += self.step
        self.rowid += 1
        self._check()

    def _check(self) -> None:
        if self.step > 0:
            self.eof = self.value > self.stop
        else:
            self.eof = self.value < self.start


# Live engine objects, keyed by the address handed to the engine
_tables: dict[int, sqlite3_vtab] = {}
_cursors: dict[int, _Cursor] = {}


def _connect(db: int, aux: int, argc: int, argv: int, vtab_out: Any, error_out: int) -> int:
    rc = native.lib().sqlite3_declare_vtab(db, SCHEMA)
    if rc != native.SQLITE_OK:
        return rc
    table = sqlite3_vtab()
    address = ctypes.addressof(table)
    _tables[address] = table
    vtab_out[0] = address
    return native.SQLITE_OK


def _disconnect(vtab: int) -> int:
    _tables.pop(vtab, None)
    return native.SQLITE_OK


def _best_index(vtab: int, info_pointer: Any) -> int:
    info = info_pointer.contents
    seen = 0
    unusable = 0
    slots = [-1, -1, -1]

    for i in range(info.nConstraint):
        constraint = info.aConstraint[i]
        if constraint.iColumn < COLUMN_START:
            continue
        bit = 1 << (constraint.iColumn - COLUMN_START)
        if not constraint.usable:
            unusable |= bit
            continue
        if constraint.op != native.SQLITE_INDEX_CONSTRAINT_EQ:
            continue
        seen |= bit
        slots[constraint.iColumn - COLUMN_START] = i

    # A hidden argument the planner cannot supply yet: ask for another plan.
    if unusable & ~seen:
        return native.SQLITE_CONSTRAINT

    argv_index = 1
    for slot in slots:
        if slot >= 0:
            usage = info.aConstraintUsage[slot]
            usage.argvIndex = argv_index
            usage.omit = 1
            argv_index += 1

    if seen & HAS_START:
        info.estimatedCost = 2.0 - (1.0 if seen & HAS_STOP else 0.0)
        info.estimatedRows = 1000
    else:
        info.estimatedCost = 2147483647.0
        info.estimatedRows = 2147483647
    info.idxNum = seen
    return native.SQLITE_OK


def _open(vtab: int, cursor_out: Any) -> int:
    cursor = _Cursor()
    address = ctypes.addressof(cursor.base)
    _cursors[address] = cursor
    cursor_out[0] = address
    return native.SQLITE_OK


def _close(cursor: int) -> int:
    _cursors.pop(cursor, None)
    return native.SQLITE_OK


def _filter(cursor_address: int, idx_num: int, idx_str: int, argc: int, argv: Any) -> int:
    cursor = _cursors[cursor_address]
    values = [int_value_of(argv[i]) for i in range(argc)]
    arguments = iter(values)
    start = next(arguments) if idx_num & HAS_START else None
    stop = next(arguments) if idx_num & HAS_STOP else DEFAULT_STOP
    step = next(arguments) if idx_num & HAS_STEP else DEFAULT_STEP

    if start is None or stop is None or step is None:
        cursor.eof = True
        return native.SQLITE_OK
    cursor.position(start, stop, step)
    return native.SQLITE_OK


def _next(cursor: int) -> int:
    _cursors[cursor].advance()
    return native.SQLITE_OK


def _eof(cursor: int) -> int:
    return int(_cursors[cursor].eof)


def _column(cursor_address: int, context: int, column: int) -> int:
    cursor = _cursors[cursor_address]
    if column == COLUMN_VALUE:
        value = cursor.value
    elif column == COLUMN_START:
        value = cursor.start
    elif column == COLUMN_STOP:
        value = cursor.stop
    else:
        value = cursor.step
    native.lib().sqlite3_result_int64(context, value)
    return native.SQLITE_OK


def _rowid(cursor: int, rowid_out: Any) -> int:
    rowid_out[0] = _cursors[cursor].rowid
    return native.SQLITE_OK


MODULE = sqlite3_module(
    iVersion=0,
    xConnect=X_CONNECT(guarded("series_connect", _connect)),
    xBestIndex=X_BEST_INDEX(guarded("series_best_index", _best_index)),
    xDisconnect=X_VTAB(guarded("series_disconnect", _disconnect)),
    xOpen=X_OPEN(guarded("series_open", _open)),
    xClose=X_CURSOR(guarded("series_close", _close)),
    xFilter=X_FILTER(guarded("series_filter", _filter)),
    xNext=X_CURSOR(guarded("series_next", _next)),
    xEof=X_CURSOR(guarded("series_eof", _eof)),
    xColumn=X_COLUMN(guarded("series_column", _column)),
    xRowid=X_ROWID(guarded("series_rowid", _rowid)),
)


def install(db: int) -> int:
    return native.lib().sqlite3_create_module(db, b"generate_series", ctypes.addressof(MODULE), None)


EXTENSION = Extension("series", install)

__all__ = ["SCHEMA", "DEFAULT_STOP", "MODULE", "install", "EXTENSION"]
