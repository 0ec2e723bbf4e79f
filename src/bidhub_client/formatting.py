"""Display helpers for amounts and budget ranges."""

from __future__ import annotations

DEFAULT_CURRENCY_SYMBOL = "₹"


def format_amount(amount: float, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Format an amount with thousands separators, dropping a zero fraction.

    >>> format_amount(4500)
    '₹4,500'
    >>> format_amount(99.5, "$")
    '$99.50'
    """
    if float(amount).is_integer():
        return f"{currency_symbol}{int(amount):,}"
    return f"{currency_symbol}{amount:,.2f}"


def format_budget_range(
    budget_min: float,
    budget_max: float,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> str:
    """Format a budget range; equal bounds collapse to a single amount."""
    if budget_min == budget_max:
        return format_amount(budget_min, currency_symbol)
    low = format_amount(budget_min, currency_symbol)
    high = format_amount(budget_max, currency_symbol)
    return f"{low} - {high}"
