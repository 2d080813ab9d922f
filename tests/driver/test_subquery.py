"""Tests for subquery and Statement.subquery."""

import pytest

from sqlbridge.core.errors import ContractViolation, EngineError, Outcome, WrongColumnCountError
from sqlbridge.core.result import Ok
from sqlbridge.driver import subquery


class TestSubquery:
    def test_single_value(self, conn):
        with conn.prepare("SELECT 'abc'") as stmt:
            assert subquery(stmt) == Ok(b"abc")
            assert not stmt.busy

    def test_first_row_only_and_reset(self, conn):
        with conn.prepare("SELECT 'a' UNION ALL SELECT 'b'") as stmt:
            assert subquery(stmt) == Ok(b"a")
            # Reset between calls: the same value comes back
            assert subquery(stmt) == Ok(b"a")

    def test_no_row(self, conn):
        with conn.prepare("SELECT 1 WHERE 0") as stmt:
            assert subquery(stmt) == Ok(None)

    def test_null_value(self, conn):
        with conn.prepare("SELECT NULL") as stmt:
            assert subquery(stmt) == Ok(None)

    def test_empty_string(self, conn):
        with conn.prepare("SELECT ''") as stmt:
            assert subquery(stmt) == Ok(b"")

    def test_too_many_columns(self, conn):
        with conn.prepare("SELECT 1, 2") as stmt:
            result = subquery(stmt)
        assert result.outcome == Outcome.WRONG_COLUMN_COUNT
        assert isinstance(result.error, WrongColumnCountError)
        assert (result.error.expected, result.error.actual) == (1, 2)

    def test_no_columns(self, conn):
        conn.execute("CREATE TABLE t(a)")
        with conn.prepare("DELETE FROM t") as stmt:
            with pytest.raises(ContractViolation):
                subquery(stmt)

    def test_engine_error(self, conn):
        with conn.prepare("SELECT abs(-9223372036854775807 - 1)") as stmt:
            result = subquery(stmt)
            assert result.outcome == Outcome.ENGINE_ERROR
            assert not stmt.busy


class TestStatementSubquery:
    def test_decodes_text(self, conn):
        with conn.prepare("SELECT 'Zoë'") as stmt:
            assert stmt.subquery() == "Zoë"

    def test_none(self, conn):
        with conn.prepare("SELECT NULL") as stmt:
            assert stmt.subquery() is None

    def test_bound_parameter(self, conn):
        with conn.prepare("SELECT upper(?)") as stmt:
            stmt.bind(1, "shout")
            assert stmt.subquery() == "SHOUT"

    def test_raises(self, conn):
        with conn.prepare("SELECT 1, 2") as stmt:
            with pytest.raises(WrongColumnCountError):
                stmt.subquery()
        with conn.prepare("SELECT abs(-9223372036854775807 - 1)") as stmt:
            with pytest.raises(EngineError):
                stmt.subquery()
