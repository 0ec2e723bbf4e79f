"""Unit tests for amount formatting."""

from __future__ import annotations

import pytest

from bidhub_client.formatting import format_amount, format_budget_range


@pytest.mark.unit
class TestFormatting:
    @pytest.mark.parametrize(
        ("amount", "symbol", "expected"),
        [
            (4500, "₹", "₹4,500"),
            (4500.0, "₹", "₹4,500"),
            (1234567, "$", "$1,234,567"),
            (99.5, "$", "$99.50"),
            (0, "$", "$0"),
        ],
    )
    def test_format_amount(self, amount: float, symbol: str, expected: str) -> None:
        assert format_amount(amount, symbol) == expected

    def test_budget_range(self) -> None:
        assert format_budget_range(1000, 5000) == "₹1,000 - ₹5,000"

    def test_equal_bounds_collapse(self) -> None:
        assert format_budget_range(200, 200, "$") == "$200"
