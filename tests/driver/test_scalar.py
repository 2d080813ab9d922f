"""
Tests for assert_query.

Tests verify the outcome table:
- SELECT 1 / SELECT 0 are Ok
- every malformed shape has its own outcome
- the statement is finalized on every path
"""

import pytest

from sqlbridge.core.errors import (
    EngineError,
    NoResultError,
    Outcome,
    TooManyResultsError,
    ValueOutOfRangeError,
    WrongColumnCountError,
    WrongValueTypeError,
)
from sqlbridge.core.result import Ok
from sqlbridge.driver import assert_query, scalar


class TestOutcomeTable:
    @pytest.mark.parametrize(
        "sql, outcome",
        [
            ("SELECT 1", Outcome.OK),
            ("SELECT 0", Outcome.OK),
            ("SELECT 2", Outcome.VALUE_OUT_OF_RANGE),
            ("SELECT -1", Outcome.VALUE_OUT_OF_RANGE),
            ("SELECT 'x'", Outcome.WRONG_VALUE_TYPE),
            ("SELECT 1.0", Outcome.WRONG_VALUE_TYPE),
            ("SELECT NULL", Outcome.WRONG_VALUE_TYPE),
            ("SELECT 1, 2", Outcome.WRONG_COLUMN_COUNT),
            ("SELECT 1 WHERE 0", Outcome.NO_RESULT),
            ("SELECT 1 UNION ALL SELECT 1", Outcome.TOO_MANY_RESULTS),
            ("SELEC 1", Outcome.ENGINE_ERROR),
            ("SELECT abs(-9223372036854775807 - 1)", Outcome.ENGINE_ERROR),
        ],
    )
    def test_outcome(self, conn, sql, outcome):
        assert assert_query(conn, sql).outcome == outcome

    def test_values(self, conn):
        assert assert_query(conn, "SELECT 1") == Ok(1)
        assert assert_query(conn, "SELECT 0") == Ok(0)
        assert assert_query(conn, "SELECT 3 > 2") == Ok(1)

    def test_raw_handle(self, conn):
        assert assert_query(conn.handle, "SELECT 1") == Ok(1)


class TestDiagnostics:
    def test_wrong_column_count(self, conn):
        error = assert_query(conn, "SELECT 1, 2, 3").error
        assert isinstance(error, WrongColumnCountError)
        assert (error.expected, error.actual) == (1, 3)
        assert error.context.sql == "SELECT 1, 2, 3"

    def test_wrong_value_type(self, conn):
        error = assert_query(conn, "SELECT 'x'").error
        assert isinstance(error, WrongValueTypeError)
        assert error.actual_type == "TEXT"

    def test_value_out_of_range(self, conn):
        error = assert_query(conn, "SELECT 7").error
        assert isinstance(error, ValueOutOfRangeError)
        assert error.value == 7

    def test_no_result(self, conn):
        assert isinstance(assert_query(conn, "SELECT 1 WHERE 0").error, NoResultError)

    def test_too_many_results(self, conn):
        assert isinstance(assert_query(conn, "VALUES (1), (0)").error, TooManyResultsError)

    def test_engine_error(self, conn):
        error = assert_query(conn, "SELECT * FROM missing").error
        assert isinstance(error, EngineError)
        assert error.code == 1
        assert "no such table" in error.message


class TestFinalize:
    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT 1",
            "SELECT 2",
            "SELECT 'x'",
            "SELECT 1, 2",
            "SELECT 1 WHERE 0",
            "SELECT 1 UNION ALL SELECT 1",
            "SELECT abs(-9223372036854775807 - 1)",
        ],
    )
    def test_statement_finalized_on_every_path(self, conn, monkeypatch, sql):
        prepared = []
        real_prepare = scalar.prepare

        def recording_prepare(db, text):
            result = real_prepare(db, text)
            prepared.append(result.value)
            return result

        monkeypatch.setattr(scalar, "prepare", recording_prepare)
        assert_query(conn, sql)

        (stmt,) = prepared
        assert stmt.closed
