"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


def clamp_day(year: int, month: int, day: int) -> date:
    """Date in the given month on `day`, or the month's last day if shorter"""
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def end_of_previous_month(d: date) -> date:
    return d.replace(day=1) - timedelta(days=1)


def add_months(d: date, months: int) -> date:
    """Calendar month shift; day is clamped (31 Jan + 1 month = 28/29 Feb)"""
    return d + relativedelta(months=months)
