"""Minor-unit money helpers; display formatting happens only here"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from kot_ledger.config import settings


def format_money(amount_minor: int, symbol: Optional[str] = None) -> str:
    """
    Format minor units as a major-unit display string.

    Example:
        format_money(125050) → "₹1,250.50"
    """
    symbol = settings.currency_symbol if symbol is None else symbol
    units = settings.minor_units_per_major
    sign = "-" if amount_minor < 0 else ""
    major, minor = divmod(abs(amount_minor), units)
    width = len(str(units - 1))
    return f"{sign}{symbol}{major:,}.{minor:0{width}d}"


def parse_money_input(value: Union[str, int, float, Decimal]) -> Optional[int]:
    """Parse user-entered major units ("₹1,250.50") into minor units, None if invalid"""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(settings.currency_symbol, "").replace(",", "").strip()
        if not value:
            return None
    try:
        major = Decimal(str(value))
    except InvalidOperation:
        return None
    if not major.is_finite() or major < 0:
        return None
    minor = (major * settings.minor_units_per_major).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)


def settlement_message(paid: int, credit: int) -> str:
    """Confirmation text shown after a bill is settled"""
    if paid == 0 and credit > 0:
        return f"Added to credit: {format_money(credit)}"
    if credit > 0:
        return f"Paid {format_money(paid)} • Credit {format_money(credit)} added"
    return "Payment successful"


def clearance_message(cleared: int, remaining: int) -> str:
    if remaining > 0:
        return f"Credit cleared: {format_money(cleared)} (Remaining {format_money(remaining)})"
    return f"Credit cleared: {format_money(cleared)}"
