"""
``next_char(prefix, table, column[, where[, collation]])``

Returns, as one string, the sorted distinct characters that follow
``prefix`` in the values of ``table.column``. Useful for incremental
completion. The optional ``where`` is an SQL expression that filters the
rows considered; ``collation`` names the collating sequence used to match
the prefix and order the result.

The lookup runs as a nested query on the calling connection, read through
``bulk_read``.

Examples:
    >>> conn.check("SELECT next_char('ap', 'words', 'w') = 'pr'")
    True
"""

from __future__ import annotations

from sqlbridge.driver import native, transfer
from sqlbridge.driver.statement import prepare
from sqlbridge.ext.functions import Extension, ScalarFunction, SqlValue


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def build_query(table: str, column: str, where: str | None = None, collation: str | None = None) -> str:
    col = quote_identifier(column)
    collate = f" COLLATE {quote_identifier(collation)}" if collation else ""
    sql = (
        f"SELECT DISTINCT substr({col}, length(?1) + 1, 1) FROM {quote_identifier(table)}"
        f" WHERE substr({col}, 1, length(?1)) = ?1{collate}"
        f" AND length({col}) > length(?1)"
    )
    if where:
        sql += f" AND ({where})"
    return sql + f" ORDER BY 1{collate}"


def next_char(db: int, *args: SqlValue) -> str | None:
    if not 3 <= len(args) <= 5:
        raise ValueError("takes 3 to 5 arguments")
    prefix, table, column = args[:3]
    where = args[3] if len(args) > 3 else None
    collation = args[4] if len(args) > 4 else None
    if prefix is None:
        return None
    if not isinstance(table, str) or not isinstance(column, str):
        raise ValueError("table and column must be text")

    sql = build_query(table, column, where and str(where), collation and str(collation))
    with prepare(db, sql).unwrap() as stmt:
        native.check(stmt.bind(1, str(prefix)), db, sql=sql)
        chars: list[str] = []
        while (row := transfer.bulk_read(stmt).unwrap()) is not None:
            chars.append(row[0] or "")
    return "".join(chars)


NEXT_CHAR = ScalarFunction("next_char", -1, next_char, deterministic=False, with_db=True)
EXTENSION = Extension("nextchar", NEXT_CHAR.register)

__all__ = ["quote_identifier", "build_query", "next_char", "NEXT_CHAR", "EXTENSION"]
