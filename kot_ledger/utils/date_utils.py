"""Financial-year date utilities"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from kot_ledger.config import settings


def shop_timezone() -> timezone:
    """Fixed offset of the shop's local time (IST has no daylight saving)"""
    return timezone(timedelta(minutes=settings.shop_utc_offset_minutes))


def financial_year(when: datetime, start_month: Optional[int] = None) -> int:
    """
    Year in which the financial year containing `when` starts.

    With the default April start, 2025-03-31 belongs to FY 2024 and
    2025-04-01 to FY 2025. Naive datetimes are taken to be UTC.
    """
    start_month = start_month or settings.fiscal_year_start_month
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    local = when.astimezone(shop_timezone())
    return local.year if local.month >= start_month else local.year - 1


def financial_year_bounds(when: datetime, start_month: Optional[int] = None) -> Tuple[datetime, datetime]:
    """[start, end) of the financial year containing `when`, in UTC"""
    start_month = start_month or settings.fiscal_year_start_month
    year = financial_year(when, start_month)
    tz = shop_timezone()
    start = datetime(year, start_month, 1, tzinfo=tz)
    end = datetime(year + 1, start_month, 1, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
