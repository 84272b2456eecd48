"""Liquidity projection engine - monthly cash curve and operating phase"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from cashflow_planner.domain.exceptions import ValidationError
from cashflow_planner.domain.models import (
    CashEvent,
    DifficultyForecast,
    ForecastEntry,
    LifecycleState,
    LiquidityPoint,
    LiquidityProjection,
    Phase,
    PhaseThresholds,
    Transaction,
)
from cashflow_planner.utils.money import apply_ratio, divide


def _monthly_flows(amounts_by_month: Dict[int, List[int]]) -> Dict[int, tuple[int, int]]:
    """month -> (inflow, outflow) with outflow kept negative"""
    flows = {}
    for month in range(1, 13):
        amounts = amounts_by_month.get(month, [])
        flows[month] = (
            sum(a for a in amounts if a > 0),
            sum(a for a in amounts if a < 0),
        )
    return flows


def classify_phase(balance_cents: int, thresholds: PhaseThresholds) -> Phase:
    """
    Map a running balance to an operating phase.

    - below the defense threshold: defense (cash is negative)
    - below the attack threshold: attack (rebuild the buffer)
    - at or above the growth threshold: growth
    - between attack and growth thresholds: attack
    """
    if balance_cents < thresholds.defense_cents:
        return Phase.DEFENSE
    elif balance_cents < thresholds.attack_cents:
        return Phase.ATTACK
    elif balance_cents >= thresholds.growth_cents:
        return Phase.GROWTH
    else:
        return Phase.ATTACK


def project_liquidity(
    year: int,
    opening_balance_cents: int,
    transactions: Iterable[Transaction],
    forecast_entries: Iterable[ForecastEntry],
    current_month: int,
    thresholds: Optional[PhaseThresholds] = None,
) -> LiquidityProjection:
    """
    Build the monthly liquidity curve for `year`.

    All deltas are signed (inflows positive, outflows negative). Internal
    transfers and deleted forecast entries are ignored. The running balance
    accumulates actual margins; the projected balance follows actuals through
    `current_month` and forecast margins after it. Phase is read from the
    current month's running balance.
    """
    if not 1 <= current_month <= 12:
        raise ValidationError("current_month must be between 1 and 12")
    thresholds = thresholds or PhaseThresholds()

    actual_by_month: Dict[int, List[int]] = defaultdict(list)
    for txn in transactions:
        if txn.date.year == year and not txn.is_transfer:
            actual_by_month[txn.date.month].append(txn.amount_cents)

    forecast_by_month: Dict[int, List[int]] = defaultdict(list)
    for entry in forecast_entries:
        if entry.date.year == year and entry.state != LifecycleState.DELETED:
            forecast_by_month[entry.date.month].append(entry.signed_amount_cents)

    actual = _monthly_flows(actual_by_month)
    expected = _monthly_flows(forecast_by_month)

    points = []
    running_balance = opening_balance_cents
    projected_balance = opening_balance_cents
    for month in range(1, 13):
        actual_in, actual_out = actual[month]
        expected_in, expected_out = expected[month]
        margin = actual_in + actual_out
        running_balance += margin

        if month <= current_month:
            projected_balance = running_balance
        else:
            projected_balance += expected_in + expected_out

        points.append(
            LiquidityPoint(
                month=month,
                expected_inflow_cents=expected_in,
                expected_outflow_cents=expected_out,
                actual_inflow_cents=actual_in,
                actual_outflow_cents=actual_out,
                margin_cents=margin,
                running_balance_cents=running_balance,
                projected_balance_cents=projected_balance,
            )
        )

    current_balance = points[current_month - 1].running_balance_cents

    return LiquidityProjection(
        year=year,
        opening_balance_cents=opening_balance_cents,
        current_month=current_month,
        phase=classify_phase(current_balance, thresholds),
        points=points,
    )


def find_difficulty_day(
    balance_cents: int,
    events: Iterable[CashEvent],
    as_of: date,
    horizon_days: int,
    available_ratio: Decimal,
) -> DifficultyForecast:
    """
    Walk cash events day by day from the day after `as_of` and find the first
    day an expense cannot be covered. `days_until` counts from `as_of`, so a
    shortfall tomorrow is 1 day away.

    Only high-reliability incomes count, and only for the share that stays in
    the business after tax and partner transfers.
    """
    start = as_of + timedelta(days=1)
    end = as_of + timedelta(days=horizon_days)
    by_day: Dict[date, List[CashEvent]] = defaultdict(list)
    for event in events:
        if start <= event.date <= end:
            by_day[event.date].append(event)

    running_balance = balance_cents
    difficulty_date = None
    days_until = None

    for offset in range(1, horizon_days + 1):
        day = as_of + timedelta(days=offset)
        for event in by_day.get(day, []):
            if event.amount_cents > 0:
                if event.reliability == "high":
                    running_balance += apply_ratio(event.amount_cents, available_ratio)
                continue

            if difficulty_date is None and running_balance + event.amount_cents < 0:
                difficulty_date = day
                days_until = offset
            running_balance += event.amount_cents

    return DifficultyForecast(days_until=days_until, date=difficulty_date, closing_balance_cents=running_balance)


def required_revenue(
    balance_cents: int,
    expenses_cents: int,
    available_ratio: Decimal,
    target_cents: int = 0,
) -> int:
    """Gross revenue needed so that balance + expenses reaches the target"""
    gap = target_cents - (balance_cents + expenses_cents)
    if gap <= 0:
        return 0
    return divide(gap, available_ratio)
