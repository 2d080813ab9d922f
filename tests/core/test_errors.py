"""Tests for sqlbridge.core.errors module."""

import pytest

from sqlbridge.core.errors import (
    AssertionFailedError,
    ContractViolation,
    DoubleReleaseError,
    EngineError,
    ErrorCategory,
    ErrorContext,
    LibraryLoadError,
    NoResultError,
    Outcome,
    ShapeMismatchError,
    SqlBridgeError,
    StaleRowError,
    StatementFinalizedError,
    TooManyResultsError,
    ValueOutOfRangeError,
    WrongColumnCountError,
    WrongValueTypeError,
    outcome_of,
)


class TestOutcome:
    """Test Outcome codes."""

    def test_codes_are_stable(self):
        assert Outcome.OK == 0
        assert Outcome.ENGINE_ERROR == -1
        assert Outcome.WRONG_COLUMN_COUNT == -2
        assert Outcome.NO_RESULT == -3
        assert Outcome.WRONG_VALUE_TYPE == -4
        assert Outcome.VALUE_OUT_OF_RANGE == -5
        assert Outcome.TOO_MANY_RESULTS == -6

    def test_ok_is_only_success(self):
        assert [o for o in Outcome if o >= 0] == [Outcome.OK]


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.sql is None
        assert ctx.row is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_includes_set_fields(self):
        ctx = ErrorContext(sql="SELECT 1", row=0, metadata={"phase": "step"})
        d = ctx.to_dict()
        assert d == {"sql": "SELECT 1", "row": 0, "phase": "step"}
        assert "column" not in d


class TestSqlBridgeError:
    """Test the base error."""

    def test_defaults(self):
        error = SqlBridgeError("boom")
        assert error.message == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.outcome == Outcome.ENGINE_ERROR
        assert error.cause is None

    def test_with_context_sets_known_fields_and_metadata(self):
        error = SqlBridgeError("boom").with_context(sql="SELECT 1", row=3, phase="bind")
        assert error.context.sql == "SELECT 1"
        assert error.context.row == 3
        assert error.context.metadata == {"phase": "bind"}

    def test_cause_is_chained(self):
        cause = OSError("missing")
        error = LibraryLoadError("cannot load", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "missing"

    def test_to_dict(self):
        error = NoResultError().with_context(sql="SELECT 1 WHERE 0")
        d = error.to_dict()
        assert d["error_type"] == "NoResultError"
        assert d["category"] == "SHAPE"
        assert d["outcome"] == "NO_RESULT"
        assert d["context"] == {"sql": "SELECT 1 WHERE 0"}

    def test_repr(self):
        assert repr(TooManyResultsError()) == (
            "TooManyResultsError('query returned more than one row', outcome=TOO_MANY_RESULTS)"
        )


class TestEngineError:
    """Test EngineError."""

    def test_code_is_kept_unchanged(self):
        error = EngineError(19, "UNIQUE constraint failed: people.id", code_name="constraint failed")
        assert error.code == 19
        assert error.outcome == Outcome.ENGINE_ERROR
        assert error.category == ErrorCategory.ENGINE
        assert str(error) == "UNIQUE constraint failed: people.id"

    def test_message_falls_back_to_code_name(self):
        assert str(EngineError(5, code_name="database is locked")) == "database is locked"
        assert str(EngineError(5)) == "sqlite status 5"

    def test_to_dict_includes_code(self):
        d = EngineError(1, "no such table: t", code_name="SQL logic error").to_dict()
        assert d["code"] == 1
        assert d["code_name"] == "SQL logic error"


class TestShapeErrors:
    """Each shape mismatch carries its own outcome and detail."""

    @pytest.mark.parametrize(
        "error, outcome",
        [
            (WrongColumnCountError(1, 2), Outcome.WRONG_COLUMN_COUNT),
            (NoResultError(), Outcome.NO_RESULT),
            (WrongValueTypeError("TEXT"), Outcome.WRONG_VALUE_TYPE),
            (ValueOutOfRangeError(2), Outcome.VALUE_OUT_OF_RANGE),
            (TooManyResultsError(), Outcome.TOO_MANY_RESULTS),
        ],
    )
    def test_outcomes(self, error, outcome):
        assert isinstance(error, ShapeMismatchError)
        assert error.outcome == outcome
        assert error.category == ErrorCategory.SHAPE

    def test_wrong_column_count_detail(self):
        error = WrongColumnCountError(1, 3)
        assert (error.expected, error.actual) == (1, 3)
        assert str(error) == "expected 1 column, got 3"

    def test_wrong_value_type_detail(self):
        assert WrongValueTypeError("FLOAT").actual_type == "FLOAT"

    def test_value_out_of_range_detail(self):
        error = ValueOutOfRangeError(-1)
        assert error.value == -1
        assert str(error) == "value -1 out of range 0..1"


class TestContractViolation:
    """Contract violations are assertion errors."""

    @pytest.mark.parametrize("cls", [ContractViolation, StatementFinalizedError, StaleRowError, DoubleReleaseError])
    def test_is_assertion_error(self, cls):
        error = cls("misuse")
        assert isinstance(error, AssertionError)
        assert isinstance(error, SqlBridgeError)
        assert error.category == ErrorCategory.CONTRACT

    def test_can_be_caught_as_assertion_error(self):
        with pytest.raises(AssertionError):
            raise DoubleReleaseError("value released twice")


class TestOutcomeOf:
    def test_sqlbridge_error(self):
        assert outcome_of(ValueOutOfRangeError(9)) == Outcome.VALUE_OUT_OF_RANGE

    def test_foreign_exception(self):
        assert outcome_of(ValueError("x")) == Outcome.ENGINE_ERROR

    def test_assertion_failed(self):
        error = AssertionFailedError("orders must balance")
        assert error.outcome == Outcome.OK
        assert error.category == ErrorCategory.SHAPE
