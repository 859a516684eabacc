"""
Tests for lumina_core.precision — 8-decimal amounts.
"""

import math

import pytest

from lumina_core.precision import (
    LMT_DECIMALS,
    LUMENS_PER_LMT,
    format_amount,
    is_valid_amount,
    lmt_to_lumens,
    lumens_to_lmt,
    normalize_amount,
)


class TestConstants:
    def test_decimals(self):
        assert LMT_DECIMALS == 8
        assert LUMENS_PER_LMT == 100_000_000


class TestNormalize:
    def test_rounds_to_eight_places(self):
        assert normalize_amount(0.123456789) == 0.12345679

    def test_repeated_debits_do_not_drift(self):
        balance = 10.0
        for _ in range(10):
            balance = normalize_amount(balance - 0.1)
        assert balance == 9.0


class TestValidAmount:
    @pytest.mark.parametrize("value", [1, 0.5, 1e-8, 5_000_000.0])
    def test_valid(self, value):
        assert is_valid_amount(value)

    @pytest.mark.parametrize(
        "value", [0, 0.0, -1, -0.00000001, math.inf, math.nan, True, "10", None]
    )
    def test_invalid(self, value):
        assert not is_valid_amount(value)


class TestConversions:
    def test_lumens_round_trip(self):
        assert lmt_to_lumens(1.5) == 150_000_000
        assert lumens_to_lmt(150_000_000) == 1.5

    def test_smallest_unit(self):
        assert lmt_to_lumens(0.00000001) == 1


class TestFormat:
    def test_format_amount(self):
        assert format_amount(10) == "10.00000000 LMT"
        assert format_amount(0.5, "USD") == "0.50000000 USD"
