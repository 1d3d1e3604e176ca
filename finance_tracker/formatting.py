"""Formatting utilities for currency, dates and percentages."""

from __future__ import annotations

from typing import Any, Union

from .models import parse_month, to_date


def format_currency(amount: Union[float, int], symbol: str = '$', decimals: int = 2) -> str:
    """Format a currency amount with thousands separators.

    Args:
        amount: The amount to format
        symbol: Currency symbol placed before the number
        decimals: Number of decimal places

    Returns:
        Formatted currency string (e.g., "$1,234.56" or "-€12.00")

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(-12, symbol='€')
        '-€12.00'
    """
    sign = '-' if amount < 0 else ''
    return f"{sign}{symbol}{abs(amount):,.{decimals}f}"


def escape_dollars_for_markdown(text: str) -> str:
    """Escape ``$`` for ``st.markdown``, where it starts a LaTeX block."""
    return text.replace("$", "\\$")


def format_percentage(value: float, decimals: int = 0) -> str:
    return f"{value:.{decimals}f}%"


def format_date(value: Any, fmt: str = 'MM/DD/YYYY') -> str:
    """Render a date using one of the supported preference formats.

    Unknown formats fall back to ``MM/DD/YYYY``.
    """
    day = to_date(value)
    if fmt == 'DD/MM/YYYY':
        return day.strftime('%d/%m/%Y')
    if fmt == 'YYYY-MM-DD':
        return day.strftime('%Y-%m-%d')
    return day.strftime('%m/%d/%Y')


def month_display_name(month: str) -> str:
    """``2024-03`` -> ``March 2024``."""
    year, mon = parse_month(month)
    return to_date(f"{year:04d}-{mon:02d}-01").strftime('%B %Y')
