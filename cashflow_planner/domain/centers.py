"""Annual expected vs. actual figures for revenue and cost centers"""

from typing import Iterable, List

from cashflow_planner.domain.models import CenterSummary, EntryType, RecurringContract, Transaction
from cashflow_planner.domain.occurrences import estimated_annual_total
from cashflow_planner.utils.money import divide


def summarize_center(
    center_id: int,
    kind: EntryType,
    year: int,
    contracts: Iterable[RecurringContract],
    transactions: Iterable[Transaction],
) -> CenterSummary:
    """
    Expected total from the center's contracts against actual movements.

    Income centers count positive movements as collected, expense centers
    count negative movements as spent; both are reported as magnitudes.
    Internal transfers and movements outside `year` are ignored.
    """
    contracts = [c for c in contracts if c.kind == kind]
    expected = sum(estimated_annual_total(c, year) for c in contracts)

    monthly = [0] * 12
    dates = []
    for txn in transactions:
        if txn.is_transfer or txn.date.year != year:
            continue
        amount = txn.amount_cents if kind == EntryType.INCOME else -txn.amount_cents
        if amount <= 0:
            continue
        monthly[txn.date.month - 1] += amount
        dates.append(txn.date)

    actual = sum(monthly)
    return CenterSummary(
        center_id=center_id,
        kind=kind,
        expected_cents=expected,
        actual_cents=actual,
        monthly_actual_cents=monthly,
        contract_count=len(contracts),
        transaction_count=len(dates),
        percent_complete=divide(actual * 100, expected) if expected > 0 else 0,
        first_movement=min(dates) if dates else None,
        last_movement=max(dates) if dates else None,
    )


def monthly_totals(summaries: Iterable[CenterSummary]) -> List[int]:
    totals = [0] * 12
    for summary in summaries:
        for i, amount in enumerate(summary.monthly_actual_cents):
            totals[i] += amount
    return totals
