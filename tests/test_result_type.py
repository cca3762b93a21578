"""Tests for the Result type and error codes."""

import inspect

import pytest

from domain.models.wager import OddsChanged
from services import error_codes
from services.result import Result


class TestResult:
    def test_ok_carries_receipt(self):
        result = Result.ok({"bet_id": 3, "stake": 100})
        assert result.success is True
        assert result.value["bet_id"] == 3
        assert result.error is None
        assert result.error_code is None

    def test_ok_without_value(self):
        result = Result.ok()
        assert result.success is True
        assert result.value is None

    def test_fail_with_code(self):
        result = Result.fail("Not enough points", code=error_codes.INSUFFICIENT_FUNDS)
        assert result.success is False
        assert result.value is None
        assert result.error == "Not enough points"
        assert result.error_code == error_codes.INSUFFICIENT_FUNDS

    def test_fail_keeps_fresh_quote(self):
        fresh = OddsChanged(quoted=2.0, current=1.8, match_id=7)
        result = Result.fail("Odds changed", code=error_codes.ODDS_CHANGED, value=fresh)
        assert result.success is False
        assert result.value.current == 1.8

    def test_truthiness_follows_success(self):
        assert Result.ok(0)
        assert not Result.fail("closed", code=error_codes.MATCH_NOT_BETTABLE)

    def test_unwrap(self):
        assert Result.ok(42).unwrap() == 42

    def test_unwrap_failure_raises_with_code(self):
        result = Result.fail("Duel already answered", code=error_codes.DUEL_NOT_PENDING)
        with pytest.raises(ValueError, match="duel_not_pending"):
            result.unwrap()

    def test_result_is_frozen(self):
        result = Result.ok(1)
        with pytest.raises(AttributeError):
            result.value = 2


class TestErrorCodes:
    def _codes(self):
        return [
            value
            for name, value in inspect.getmembers(error_codes)
            if not name.startswith("_") and isinstance(value, str)
        ]

    def test_codes_are_unique(self):
        codes = self._codes()
        assert len(codes) == len(set(codes))

    def test_codes_are_snake_case(self):
        for code in self._codes():
            assert code == code.lower()
            assert " " not in code

    @pytest.mark.parametrize(
        "name",
        [
            "INSUFFICIENT_FUNDS",
            "ODDS_CHANGED",
            "MATCH_NOT_BETTABLE",
            "SELF_DUEL",
            "ALREADY_CLAIMED",
            "REGISTRATION_CLOSED",
        ],
    )
    def test_wager_codes_exist(self, name):
        assert hasattr(error_codes, name)
