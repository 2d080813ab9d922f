"""
Spelling-correction helpers.

``editdist3(a, b)``
    Weighted edit distance: insert and delete cost 100, substitution 150,
    and a substitution that only changes letter case costs 10.

``spellfix1_translit(text)``
    ASCII transliteration: NFKD decomposition with combining marks dropped
    and remaining non-ASCII characters removed.

Examples:
    >>> editdist3("kitten", "sitten")
    150
    >>> editdist3("Hello", "hello")
    10
    >>> spellfix1_translit("Crème Brûlée")
    'Creme Brulee'
"""

from __future__ import annotations

import unicodedata

from sqlbridge.ext.functions import Extension, ScalarFunction, SqlValue, register_all

INSERT_COST = 100
DELETE_COST = 100
SUBSTITUTE_COST = 150
CASE_COST = 10


def _substitution_cost(a: str, b: str) -> int:
    if a == b:
        return 0
    if a.lower() == b.lower():
        return CASE_COST
    return SUBSTITUTE_COST


def edit_distance(source: str, target: str) -> int:
    previous = [j * INSERT_COST for j in range(len(target) + 1)]
    for i, a in enumerate(source, start=1):
        current = [i * DELETE_COST]
        for j, b in enumerate(target, start=1):
            current.append(
                min(
                    previous[j] + DELETE_COST,
                    current[j - 1] + INSERT_COST,
                    previous[j - 1] + _substitution_cost(a, b),
                )
            )
        previous = current
    return previous[-1]


def editdist3(source: SqlValue, target: SqlValue) -> int | None:
    if source is None or target is None:
        return None
    return edit_distance(str(source), str(target))


def transliterate(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    kept = (ch for ch in decomposed if not unicodedata.combining(ch))
    return "".join(ch for ch in kept if ch.isascii())


def spellfix1_translit(text: SqlValue) -> str | None:
    if text is None:
        return None
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    return transliterate(str(text))


EDITDIST3 = ScalarFunction("editdist3", 2, editdist3)
TRANSLIT = ScalarFunction("spellfix1_translit", 1, spellfix1_translit)


def install(db: int) -> int:
    return register_all(db, EDITDIST3, TRANSLIT)


EXTENSION = Extension("spellfix", install)

__all__ = [
    "edit_distance",
    "editdist3",
    "transliterate",
    "spellfix1_translit",
    "EDITDIST3",
    "TRANSLIT",
    "EXTENSION",
]
