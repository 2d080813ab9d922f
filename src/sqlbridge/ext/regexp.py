"""REGEXP operator: ``X REGEXP Y`` calls ``regexp(Y, X)`` with Python ``re.search`` semantics."""

from __future__ import annotations

import re
from functools import lru_cache

from sqlbridge.ext.functions import Extension, ScalarFunction, SqlValue


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _as_text(value: SqlValue) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def regexp(pattern: SqlValue, text: SqlValue) -> int | None:
    """1 if ``pattern`` matches anywhere in ``text``, 0 if not, NULL if either is NULL."""
    if pattern is None or text is None:
        return None
    return int(_compile(_as_text(pattern)).search(_as_text(text)) is not None)


REGEXP = ScalarFunction("regexp", 2, regexp)
EXTENSION = Extension("regexp", REGEXP.register)

__all__ = ["regexp", "REGEXP", "EXTENSION"]
