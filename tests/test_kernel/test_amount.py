"""Tests for fixed-point amounts."""

from __future__ import annotations

from decimal import Decimal

import pytest

from safe_wallet.errors.definitions import InvalidAmount
from safe_wallet.kernel.amount import UNIT, format_amount, parse_amount


class TestParseAmount:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1", UNIT),
            ("0.00000001", 1),
            ("0.5", 50_000_000),
            ("123.45678901", 12_345_678_901),
            (Decimal("2.5"), 250_000_000),
            (3, 3 * UNIT),
            ("0", 0),
        ],
    )
    def test_valid(self, value: str | int | Decimal, expected: int) -> None:
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["-1", "0.000000001", "abc", "", "NaN", "Infinity"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(InvalidAmount):
            parse_amount(value)

    def test_bool_rejected(self) -> None:
        with pytest.raises(InvalidAmount):
            parse_amount(True)  # type: ignore[arg-type]


class TestFormatAmount:
    @pytest.mark.parametrize(
        ("units", "expected"),
        [
            (0, "0"),
            (UNIT, "1"),
            (1, "0.00000001"),
            (50_000_000, "0.5"),
            (12_345_678_901, "123.45678901"),
        ],
    )
    def test_format(self, units: int, expected: str) -> None:
        assert format_amount(units) == expected
