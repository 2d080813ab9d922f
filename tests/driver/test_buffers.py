"""Tests for sqlbridge.driver.buffers module."""

import pytest

from sqlbridge.core.errors import ContractViolation, DoubleReleaseError
from sqlbridge.driver import native
from sqlbridge.driver.buffers import Batch, OwnedValue, ValueState, bind_value, engine_owned_count


class TestOwnedValue:
    """Test single-value ownership."""

    def test_str_is_encoded(self):
        value = OwnedValue("héllo")
        assert value.data == "héllo".encode("utf-8")
        assert value.size == 6
        assert value.state is ValueState.OWNED

    def test_bytes_are_kept(self):
        assert OwnedValue(b"raw").data == b"raw"

    def test_empty_value(self):
        value = OwnedValue("")
        assert value.size == 0
        assert value.data == b""

    def test_rejects_other_types(self):
        with pytest.raises(ContractViolation):
            OwnedValue(5)

    def test_release_once(self, tracker):
        value = OwnedValue("x", on_release=tracker)
        value.release()
        assert value.state is ValueState.RELEASED
        assert tracker.released == [value]

    def test_double_release_raises(self, tracker):
        value = OwnedValue("x", on_release=tracker)
        value.release()
        with pytest.raises(DoubleReleaseError):
            value.release()
        assert tracker.count == 1

    def test_released_buffer_is_gone(self):
        value = OwnedValue("x")
        value.release()
        with pytest.raises(DoubleReleaseError):
            value.data

    def test_transfer_twice_raises(self, conn):
        with conn.prepare("SELECT ?") as stmt:
            value = OwnedValue("x")
            assert bind_value(stmt.handle, 1, value) == native.SQLITE_OK
            with pytest.raises(DoubleReleaseError):
                value.transfer()

    def test_host_cannot_release_bound_value(self, conn):
        with conn.prepare("SELECT ?") as stmt:
            value = OwnedValue("x")
            bind_value(stmt.handle, 1, value)
            with pytest.raises(ContractViolation):
                value.release()


class TestEngineOwnership:
    """Ownership transfer through the engine's destructor callback."""

    def test_engine_releases_on_clear_bindings(self, conn, tracker):
        before = engine_owned_count()
        with conn.prepare("SELECT ?") as stmt:
            value = OwnedValue("payload", on_release=tracker)
            assert bind_value(stmt.handle, 1, value) == native.SQLITE_OK
            assert value.state is ValueState.BOUND
            assert engine_owned_count() == before + 1

            assert stmt.clear_bindings() == native.SQLITE_OK
            assert value.state is ValueState.RELEASED
            assert engine_owned_count() == before
        assert tracker.count == 1

    def test_engine_releases_on_finalize(self, conn, tracker):
        value = OwnedValue("payload", on_release=tracker)
        with conn.prepare("SELECT ?") as stmt:
            bind_value(stmt.handle, 1, value)
        assert value.state is ValueState.RELEASED
        assert tracker.count == 1

    def test_failed_bind_releases_exactly_once(self, conn, tracker):
        before = engine_owned_count()
        with conn.prepare("SELECT ?") as stmt:
            value = OwnedValue("orphan", on_release=tracker)
            # Position 2 does not exist on a one-parameter statement
            rc = bind_value(stmt.handle, 2, value)
        assert rc != native.SQLITE_OK
        assert value.state is ValueState.RELEASED
        assert tracker.count == 1
        assert engine_owned_count() == before

    def test_null_binds_without_buffer(self, conn):
        with conn.prepare("SELECT ? IS NULL") as stmt:
            assert bind_value(stmt.handle, 1, None) == native.SQLITE_OK
            assert stmt.step() == native.SQLITE_ROW
            assert stmt.column_int(0) == 1


class TestBatch:
    """Test the batch container."""

    def test_take_in_order(self):
        batch = Batch(["a", None, "c"])
        assert len(batch) == 3
        assert batch.take().data == b"a"
        assert batch.take() is None
        assert batch.remaining == 1

    def test_take_past_end(self):
        batch = Batch(["a"])
        batch.take()
        with pytest.raises(ContractViolation):
            batch.take()

    def test_of_rows_flattens(self):
        batch = Batch.of_rows([("1", "a"), ("2", None)])
        assert len(batch) == 4
        assert [v.data if v else None for v in batch.values] == [b"1", b"a", b"2", None]

    def test_close_releases_untaken_values(self, tracker):
        batch = Batch(["a", None, "c", "d"], on_release=tracker)
        batch.take().release()
        batch.close()
        assert batch.closed
        assert batch.remaining == 0
        assert tracker.count == 3
        assert tracker.distinct == 3

    def test_release_remaining_counts_buffers(self, tracker):
        batch = Batch([None, "b", None], on_release=tracker)
        assert batch.release_remaining() == 1
        assert batch.release_remaining() == 0

    def test_close_twice_raises(self):
        batch = Batch(["a"])
        batch.close()
        with pytest.raises(DoubleReleaseError):
            batch.close()

    def test_take_after_close_raises(self):
        batch = Batch(["a"])
        batch.close()
        with pytest.raises(DoubleReleaseError):
            batch.take()
