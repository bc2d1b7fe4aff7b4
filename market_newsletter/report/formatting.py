"""Label and number formatting shared by charts and tables.

Month labels are built from numeric month/year through a fixed table, so they
do not depend on locale or timezone.
"""

from __future__ import annotations

from ..core.constants import MONTH_ABBREVIATIONS
from ..core.enums import ValueFormat


def month_label(month: int, year: int) -> str:
    """Format a month as 'Jan 2024'."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {month}")
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def format_currency(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def format_currency_tick(value: float) -> str:
    """Axis tick label: values above 1000 abbreviate to thousands."""
    sign = "-" if value < 0 else ""
    if abs(value) > 1000:
        thousands = abs(value) / 1000
        text = f"{thousands:,.1f}".rstrip("0").rstrip(".")
        return f"{sign}${text}k"
    return f"{sign}${abs(value):,.0f}"


def format_days(value: float) -> str:
    return f"{value:,.0f} days"


def format_count(value: float) -> str:
    return f"{value:,.0f}"


def format_percent(value: float) -> str:
    return f"{value:.0f}%"


def format_value(value: float, value_format: ValueFormat) -> str:
    if value_format is ValueFormat.CURRENCY:
        return format_currency(value)
    if value_format is ValueFormat.DAYS:
        return format_days(value)
    if value_format is ValueFormat.PERCENT:
        return format_percent(value)
    return format_count(value)


def format_tick(value: float, value_format: ValueFormat) -> str:
    if value_format is ValueFormat.CURRENCY:
        return format_currency_tick(value)
    return format_value(value, value_format)


def format_optional(value: float | None, value_format: ValueFormat) -> str:
    return "N/A" if value is None else format_value(value, value_format)
