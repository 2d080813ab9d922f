"""Tests for the generate_series table-valued function."""

import pytest

from sqlbridge.ext.series import DEFAULT_STOP


def values(connection, sql):
    with connection.prepare(sql) as stmt:
        return [int(row[0]) for row in stmt.iter()]


class TestGenerateSeries:
    @pytest.mark.parametrize(
        "args, expected",
        [
            ("1, 5", [1, 2, 3, 4, 5]),
            ("0, 10, 5", [0, 5, 10]),
            ("0, 9, 5", [0, 5]),
            ("1, 3, 0", [1, 2, 3]),
            ("1, 10, -2", [9, 7, 5, 3, 1]),
            ("0, 9, -5", [5, 0]),
            ("10, 1, -3", []),
            ("5, 1", []),
            ("-2, 2", [-2, -1, 0, 1, 2]),
        ],
    )
    def test_ranges(self, ext_conn, args, expected):
        assert values(ext_conn, f"SELECT value FROM generate_series({args})") == expected

    def test_default_stop(self, ext_conn):
        assert values(ext_conn, f"SELECT value FROM generate_series({DEFAULT_STOP - 5})") == list(
            range(DEFAULT_STOP - 5, DEFAULT_STOP + 1)
        )

    def test_null_start_is_empty(self, ext_conn):
        assert values(ext_conn, "SELECT value FROM generate_series(NULL, 5)") == []

    def test_null_stop_is_empty(self, ext_conn):
        assert values(ext_conn, "SELECT value FROM generate_series(1, NULL)") == []

    def test_no_arguments_is_empty(self, ext_conn):
        assert values(ext_conn, "SELECT value FROM generate_series") == []

    def test_hidden_columns(self, ext_conn):
        with ext_conn.prepare("SELECT value, start, stop, step FROM generate_series(2, 6, 2)") as stmt:
            rows = list(stmt.iter().texts())
        assert rows == [("2", "2", "6", "2"), ("4", "2", "6", "2"), ("6", "2", "6", "2")]

    def test_constraints_in_where_clause(self, ext_conn):
        assert ext_conn.check(
            "SELECT count(*) = 10 FROM generate_series WHERE start = 1 AND stop = 10"
        )

    def test_aggregate_and_join(self, ext_conn):
        assert ext_conn.check("SELECT sum(value) = 55 FROM generate_series(1, 10)")
        assert ext_conn.check(
            "SELECT count(*) = 6 FROM generate_series(1, 3) AS a, generate_series(1, 2) AS b"
        )

    def test_rowid_counts_from_one(self, ext_conn):
        assert values(ext_conn, "SELECT rowid FROM generate_series(10, 30, 10)") == [1, 2, 3]

    def test_descending_hidden_step(self, ext_conn):
        with ext_conn.prepare("SELECT value, step FROM generate_series(2, 6, -2)") as stmt:
            rows = list(stmt.iter().texts())
        assert rows == [("6", "-2"), ("4", "-2"), ("2", "-2")]

    def test_missing_start_is_empty(self, ext_conn):
        assert values(ext_conn, "SELECT value FROM generate_series WHERE stop = 3") == []
