"""sqlbridge driver -- the native SQLite boundary.

    native.py          Library loading, prototypes, status codes
    buffers.py         OwnedValue / Batch ownership model
    statement.py       Statement handle
    connection.py      Connection handle
    transfer.py        bulk_insert, bulk_read, subquery, BulkLoader, RowIterator
    scalar.py          assert_query
"""

from sqlbridge.driver.buffers import Batch, OwnedValue, ValueState
from sqlbridge.driver.connection import Connection, connections_opened
from sqlbridge.driver.scalar import assert_query
from sqlbridge.driver.statement import Statement
from sqlbridge.driver.transfer import BulkLoader, Row, RowIterator, bulk_insert, bulk_read, subquery

__all__ = [
    "Batch",
    "OwnedValue",
    "ValueState",
    "Connection",
    "connections_opened",
    "Statement",
    "Row",
    "BulkLoader",
    "RowIterator",
    "bulk_insert",
    "bulk_read",
    "subquery",
    "assert_query",
]
