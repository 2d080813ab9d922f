"""sqlbridge SQL extensions.

    functions.py       ScalarFunction / Extension callback adapters
    regexp.py          X REGEXP Y
    series.py          generate_series table-valued function
    nextchar.py        next_char completion helper
    spellfix.py        editdist3, spellfix1_translit
    registrar.py       register_extensions / reset_extensions
"""

from sqlbridge.ext.functions import Extension, ScalarFunction
from sqlbridge.ext.registrar import (
    EXTENSIONS,
    register_extensions,
    registered_extensions,
    reset_extensions,
)

__all__ = [
    "Extension",
    "ScalarFunction",
    "EXTENSIONS",
    "register_extensions",
    "registered_extensions",
    "reset_extensions",
]
