"""Yearly report per revenue center (incomes) or cost center (expenses)"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import List

from sqlalchemy.orm import Session

from cashflow_planner.domain.centers import monthly_totals, summarize_center
from cashflow_planner.domain.models import CenterSummary, EntryType
from cashflow_planner.infrastructure.database.repositories import ContractRepository, TransactionRepository


@dataclass
class CenterReport:
    year: int
    kind: EntryType
    centers: List[CenterSummary] = field(default_factory=list)
    monthly_totals_cents: List[int] = field(default_factory=lambda: [0] * 12)

    @property
    def expected_cents(self) -> int:
        return sum(c.expected_cents for c in self.centers)

    @property
    def actual_cents(self) -> int:
        return sum(c.actual_cents for c in self.centers)

    @property
    def variance_cents(self) -> int:
        return self.actual_cents - self.expected_cents


class CenterReportService:
    def __init__(self, db: Session):
        self.contracts = ContractRepository(db)
        self.transactions = TransactionRepository(db)

    def report(self, year: int, kind: EntryType) -> CenterReport:
        start, end = date(year, 1, 1), date(year, 12, 31)

        by_center = defaultdict(list)
        for contract in self.contracts.list_contracts(year=year, kind=kind, active_only=True):
            if contract.center_id is not None:
                by_center[contract.center_id].append(contract)

        center_ids = set(by_center) | set(self.transactions.center_ids_between(start, end))
        summaries = []
        for center_id in sorted(center_ids):
            summary = summarize_center(
                center_id,
                kind,
                year,
                by_center.get(center_id, []),
                self.transactions.list_for_center(center_id, start, end),
            )
            # A center only belongs to this report if it has contracts or movements of this kind
            if summary.contract_count or summary.transaction_count:
                summaries.append(summary)

        return CenterReport(year=year, kind=kind, centers=summaries, monthly_totals_cents=monthly_totals(summaries))
