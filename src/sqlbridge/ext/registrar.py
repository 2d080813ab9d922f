"""
Process-wide extension registration.

``register_extensions()`` hands each extension's entry point to
``sqlite3_auto_extension`` in a fixed order, so every connection opened
afterwards gets ``regexp``, ``generate_series``, ``next_char``,
``editdist3`` and ``spellfix1_translit``. Connections that are already open
are not affected.

Registration stops at the first failure; extensions registered before it
stay registered. Registering the same entry point twice is a no-op in the
engine, so repeated calls are safe.

Examples:
    >>> register_extensions()
    Ok(('regexp', 'series', 'nextchar', 'spellfix'))
    >>> registered_extensions()
    ('regexp', 'series', 'nextchar', 'spellfix')
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from sqlbridge.core.logging import get_logger
from sqlbridge.core.result import Err, Ok, Result
from sqlbridge.driver import native
from sqlbridge.driver.connection import connections_opened
from sqlbridge.ext import nextchar, regexp, series, spellfix
from sqlbridge.ext.functions import Extension

logger = get_logger(__name__)

EXTENSIONS: tuple[Extension, ...] = (
    regexp.EXTENSION,
    series.EXTENSION,
    nextchar.EXTENSION,
    spellfix.EXTENSION,
)

_registered: list[str] = []
_lock = threading.Lock()


def register_extensions(extensions: Sequence[Extension] = EXTENSIONS) -> Result[tuple[str, ...]]:
    """Register extensions in order; Ok carries the names registered by this call."""
    with _lock:
        opened = connections_opened()
        if opened:
            logger.warning(
                "extensions_registered_after_open",
                connections_opened=opened,
                detail="already-open connections keep their current extensions",
            )

        library = native.lib()
        names: list[str] = []
        for extension in extensions:
            rc = library.sqlite3_auto_extension(extension.address)
            if rc != native.SQLITE_OK:
                error = native.engine_error(rc).with_context(extension=extension.name)
                logger.warning("extension_registration_failed", **error.to_dict())
                return Err(error)
            names.append(extension.name)
            if extension.name not in _registered:
                _registered.append(extension.name)

        logger.debug("extensions_registered", extensions=names)
        return Ok(tuple(names))


def registered_extensions() -> tuple[str, ...]:
    with _lock:
        return tuple(_registered)


def reset_extensions() -> None:
    """Remove every auto-extension from the engine, including ones registered elsewhere."""
    with _lock:
        native.lib().sqlite3_reset_auto_extension()
        _registered.clear()
    logger.debug("extensions_reset")


__all__ = [
    "EXTENSIONS",
    "register_extensions",
    "registered_extensions",
    "reset_extensions",
]
