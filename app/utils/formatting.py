"""Brazilian display formats for money and dates"""

from datetime import datetime
from typing import Optional


def format_brl(cents: Optional[int]) -> str:
    """Format an amount in centavos as Brazilian Real, e.g. 123456 -> "R$ 1.234,56"."""
    value = (cents or 0) / 100
    sign = "-" if value < 0 else ""
    formatted = f"{abs(value):,.2f}"
    # swap the US separators for the Brazilian ones
    formatted = formatted.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {formatted}"


def format_date_br(value: Optional[datetime]) -> str:
    if not value:
        return ""
    return value.strftime("%d/%m/%Y")
