"""Date manipulation utilities"""

from datetime import date
from typing import List

from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """
    Calendar month arithmetic: same day-of-month, clamped to the last day of
    shorter months (Jan 31 + 1 month = Feb 28/29).
    """
    return from_date + relativedelta(months=months)


def monthly_dates(start: date, count: int) -> List[date]:
    """Dates 1..count months after start, each computed from start so clamping never accumulates"""
    return [add_months(start, i) for i in range(1, count + 1)]
