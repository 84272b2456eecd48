"""Occurrence calculation for recurring contracts.

Single source of truth for "in which months does this contract produce a cash
event". Everything that needs occurrences (forecast generation, annual totals,
reports) goes through this module so the month-by-month and the multiplier
views always agree.
"""

from datetime import date
from typing import List, Set

from cashflow_planner.domain.models import Frequency, RecurringContract
from cashflow_planner.utils.date_utils import clamp_day

PERIOD_MONTHS = {
    Frequency.QUARTERLY: 3,
    Frequency.SEMIANNUAL: 6,
}


def _as_frequency(value) -> Frequency:
    try:
        return Frequency(value)
    except ValueError:
        # Unknown frequencies behave as monthly
        return Frequency.MONTHLY


def active_window(contract: RecurringContract, year: int) -> tuple[int, int]:
    """
    Contract's active months within `year` as (first, last).

    first == 13 means the contract starts after `year`, last == 0 means it
    ended before it.
    """
    start = contract.start_date
    if start.year < year:
        first = 1
    elif start.year > year:
        first = 13
    else:
        first = start.month

    end = contract.end_date
    if end is None or end.year > year:
        last = 12
    elif end.year < year:
        last = 0
    else:
        last = end.month

    return first, last


def occurrences(contract: RecurringContract, year: int) -> Set[int]:
    """
    Months (1..12) of `year` on which the contract produces a cash event.

    Quarterly and semiannual contracts are anchored on the contract's
    start month, so a contract started in November still lands on
    Feb/May/Aug/Nov of the following years.
    """
    first, last = active_window(contract, year)
    if first > 12 or last < 1:
        return set()

    frequency = _as_frequency(contract.frequency)
    anchor = contract.start_date.month
    in_range = range(first, last + 1)

    if frequency == Frequency.MONTHLY:
        return set(in_range)

    if frequency in PERIOD_MONTHS:
        period = PERIOD_MONTHS[frequency]
        return {m for m in in_range if (m - anchor) % period == 0}

    if frequency == Frequency.ONE_TIME and year != contract.start_date.year:
        return set()

    # annual / one_time
    return {anchor} if anchor in in_range else set()


def frequency_multiplier(frequency, active_month_count: int) -> int:
    """How many events fall in `active_month_count` consecutive active months"""
    frequency = _as_frequency(frequency)
    if frequency == Frequency.MONTHLY:
        return active_month_count
    if frequency in PERIOD_MONTHS:
        return active_month_count // PERIOD_MONTHS[frequency]
    return 1


def annual_total(contract: RecurringContract, year: int) -> int:
    """Expected cash for the contract in `year`, in minor units"""
    return contract.amount_cents * len(occurrences(contract, year))


def estimated_annual_total(contract: RecurringContract, year: int) -> int:
    """
    Annual estimate from the count of active months, without month placement.

    Agrees with annual_total for contracts active the whole year; a clipped
    window is counted in whole periods (5 active months of a quarterly
    contract count once).
    """
    first, last = active_window(contract, year)
    active_months = max(0, last - first + 1)
    if active_months == 0:
        return 0
    if _as_frequency(contract.frequency) == Frequency.ONE_TIME and contract.start_date.year != year:
        return 0
    return contract.amount_cents * frequency_multiplier(contract.frequency, active_months)


def occurrence_dates(contract: RecurringContract, range_start: date, range_end: date) -> List[date]:
    """
    Dated occurrences between range_start and range_end (inclusive), ordered.

    Each occurrence month is placed on the contract's expected day, clamped to
    the month's last day (day 31 falls on 30 Apr, 28/29 Feb). A dated
    occurrence must also fall within the contract's own start and inclusive
    end date, so a contract starting on the 15th with an expected day of 1
    has no entry in its first month.
    """
    first = max(range_start, contract.start_date)
    last = range_end if contract.end_date is None else min(range_end, contract.end_date)
    if last < first:
        return []

    day = contract.day_of_month
    dates = []
    for year in range(first.year, last.year + 1):
        for month in sorted(occurrences(contract, year)):
            when = clamp_day(year, month, day)
            if first <= when <= last:
                dates.append(when)
    return dates
