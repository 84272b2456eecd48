"""Unit tests for occurrence calculation"""

import pytest
from dataclasses import replace
from datetime import date
from dateutil.relativedelta import relativedelta
from cashflow_planner.domain.models import EntryType, Frequency, RecurringContract
from cashflow_planner.domain.occurrences import (
    active_window,
    annual_total,
    estimated_annual_total,
    frequency_multiplier,
    occurrence_dates,
    occurrences,
)


def make_contract(frequency, start, end=None, kind=EntryType.EXPENSE, day=None) -> RecurringContract:
    return RecurringContract(
        kind=kind,
        label="Contract",
        amount_cents=10_000,
        frequency=frequency,
        start_date=start,
        end_date=end,
        expected_day=day,
    )


def test_monthly_income_full_year(monthly_income):
    """Monthly income from 1 Jan with no end occurs every month"""
    assert occurrences(monthly_income, 2026) == set(range(1, 13))
    assert annual_total(monthly_income, 2026) == 120_000
    assert frequency_multiplier(Frequency.MONTHLY, 12) == 12


def test_quarterly_expense_anchored_on_start_month(quarterly_expense):
    assert occurrences(quarterly_expense, 2026) == {2, 5, 8, 11}


def test_quarterly_anchor_survives_year_boundary():
    """Started in November: following years land on Feb/May/Aug/Nov"""
    contract = make_contract(Frequency.QUARTERLY, date(2025, 11, 1))
    assert occurrences(contract, 2025) == {11}
    assert occurrences(contract, 2026) == {2, 5, 8, 11}


@pytest.mark.parametrize(
    "frequency,period",
    [(Frequency.QUARTERLY, 3), (Frequency.SEMIANNUAL, 6)],
)
@pytest.mark.parametrize("start_month", [1, 2, 3, 4])
def test_shifting_start_by_one_period_keeps_occurrences_in_phase(frequency, period, start_month):
    """Start one period later within the same year: months in the window are unchanged"""
    base = make_contract(frequency, date(2026, start_month, 1))
    shifted = replace(base, start_date=base.start_date + relativedelta(months=period))

    first, _ = active_window(shifted, 2026)
    expected = {m for m in occurrences(base, 2026) if m >= first}
    assert occurrences(shifted, 2026) == expected
    assert all((m - base.start_date.month) % period == 0 for m in occurrences(shifted, 2026))


def test_semiannual_occurrences():
    contract = make_contract(Frequency.SEMIANNUAL, date(2024, 3, 10))
    assert occurrences(contract, 2026) == {3, 9}


@pytest.mark.parametrize(
    "frequency",
    [Frequency.MONTHLY, Frequency.QUARTERLY, Frequency.SEMIANNUAL, Frequency.ANNUAL],
)
def test_multiplier_agrees_with_occurrences_for_full_year(frequency):
    contract = make_contract(frequency, date(2025, 1, 1))
    assert len(occurrences(contract, 2026)) == frequency_multiplier(frequency, 12)


def test_window_clipped_by_end_date():
    contract = make_contract(Frequency.MONTHLY, date(2025, 6, 1), end=date(2026, 4, 30))
    assert occurrences(contract, 2026) == {1, 2, 3, 4}


def test_contract_outside_year_has_no_occurrences():
    future = make_contract(Frequency.MONTHLY, date(2027, 1, 1))
    ended = make_contract(Frequency.MONTHLY, date(2024, 1, 1), end=date(2025, 12, 31))

    assert active_window(future, 2026) == (13, 12)
    assert occurrences(future, 2026) == set()
    assert active_window(ended, 2026) == (1, 0)
    assert occurrences(ended, 2026) == set()


def test_annual_only_in_start_month():
    contract = make_contract(Frequency.ANNUAL, date(2024, 7, 15))
    assert occurrences(contract, 2026) == {7}


def test_annual_start_month_outside_clipped_window():
    contract = make_contract(Frequency.ANNUAL, date(2024, 7, 15), end=date(2026, 5, 31))
    assert occurrences(contract, 2026) == set()


def test_one_time_only_in_its_own_year():
    contract = make_contract(Frequency.ONE_TIME, date(2026, 9, 1))
    assert occurrences(contract, 2026) == {9}
    assert occurrences(contract, 2027) == set()


def test_unknown_frequency_behaves_as_monthly():
    contract = make_contract("fortnightly", date(2026, 10, 1))
    assert occurrences(contract, 2026) == {10, 11, 12}
    assert frequency_multiplier("fortnightly", 3) == 3


def test_occurrence_dates_use_default_days():
    income = make_contract(Frequency.MONTHLY, date(2026, 1, 1), kind=EntryType.INCOME)
    expense = make_contract(Frequency.MONTHLY, date(2026, 1, 1))

    assert occurrence_dates(income, date(2026, 1, 1), date(2026, 2, 28)) == [date(2026, 1, 20), date(2026, 2, 20)]
    assert occurrence_dates(expense, date(2026, 1, 1), date(2026, 2, 28)) == [date(2026, 1, 1), date(2026, 2, 1)]


def test_occurrence_dates_clamp_to_month_end():
    contract = make_contract(Frequency.MONTHLY, date(2026, 1, 1), day=31)
    dates = occurrence_dates(contract, date(2026, 1, 1), date(2026, 4, 30))
    assert dates == [date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31), date(2026, 4, 30)]


def test_occurrence_dates_span_years(quarterly_expense):
    dates = occurrence_dates(quarterly_expense, date(2026, 6, 1), date(2027, 3, 31))
    assert dates == [date(2026, 8, 1), date(2026, 11, 1), date(2027, 2, 1)]


def test_occurrence_dates_empty_range():
    contract = make_contract(Frequency.MONTHLY, date(2026, 1, 1))
    assert occurrence_dates(contract, date(2026, 5, 1), date(2026, 4, 1)) == []


def test_occurrence_dates_skip_day_before_mid_month_start():
    """Started on the 15th, paid on the 1st: first entry is next month"""
    contract = make_contract(Frequency.MONTHLY, date(2026, 9, 15))
    dates = occurrence_dates(contract, date(2026, 6, 15), date(2026, 12, 31))
    assert dates == [date(2026, 10, 1), date(2026, 11, 1), date(2026, 12, 1)]


def test_occurrence_dates_stop_at_mid_month_end():
    """Ends on the 10th, paid on the 20th: the end month has no entry"""
    contract = make_contract(Frequency.MONTHLY, date(2026, 1, 1), end=date(2026, 3, 10), kind=EntryType.INCOME)
    dates = occurrence_dates(contract, date(2026, 1, 1), date(2026, 12, 31))
    assert dates == [date(2026, 1, 20), date(2026, 2, 20)]


def test_occurrence_dates_end_date_is_inclusive():
    contract = make_contract(Frequency.MONTHLY, date(2026, 1, 1), end=date(2026, 2, 20), kind=EntryType.INCOME)
    assert occurrence_dates(contract, date(2026, 1, 1), date(2026, 12, 31)) == [date(2026, 1, 20), date(2026, 2, 20)]


@pytest.mark.parametrize(
    "frequency",
    [Frequency.MONTHLY, Frequency.QUARTERLY, Frequency.SEMIANNUAL, Frequency.ANNUAL, Frequency.ONE_TIME],
)
def test_estimate_matches_annual_total_for_full_year(frequency):
    contract = make_contract(frequency, date(2026, 1, 1))
    assert estimated_annual_total(contract, 2026) == annual_total(contract, 2026)


def test_estimate_counts_whole_periods_of_clipped_window():
    """Aug..Dec is five active months: one full quarter"""
    contract = make_contract(Frequency.QUARTERLY, date(2026, 8, 1))
    assert estimated_annual_total(contract, 2026) == 10_000


def test_estimate_outside_window_is_zero():
    assert estimated_annual_total(make_contract(Frequency.MONTHLY, date(2027, 1, 1)), 2026) == 0
    assert estimated_annual_total(make_contract(Frequency.ONE_TIME, date(2025, 5, 1)), 2026) == 0
