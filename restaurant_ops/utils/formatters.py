"""
Formatting helpers for money and dates.

Amounts are kept as exact Decimals everywhere and only rounded here, at
presentation time (ROUND_HALF_UP to cents).
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional

CENT = Decimal('0.01')


def money(value: Union[int, float, Decimal, str, None]) -> Optional[Decimal]:
    """
    Round an amount to cents, half up.

    Examples:
        money(Decimal('87.125')) -> Decimal('87.13')
        money(Decimal('-25.745')) -> Decimal('-25.75')
        money(None) -> None
    """
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format an amount for display: $1,234.57 (negatives as -$25.75).
    """
    if value is None or value == "":
        return "-"
    try:
        amount = money(value)
    except (InvalidOperation, ValueError, TypeError):
        return "-"
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):,.2f}"


def date_us(value: Union[date, datetime, None]) -> str:
    """Format a date as MM/DD/YYYY."""
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime('%m/%d/%Y')
