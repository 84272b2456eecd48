"""Sales pipeline: opportunities, breakdowns and installment generation on win"""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from cashflow_planner.domain.exceptions import NotFoundError, ValidationError
from cashflow_planner.domain.installments import generate_sales_installments
from cashflow_planner.domain.models import SalesBreakdown, SalesStatus
from cashflow_planner.domain.splits import calculate_sales_breakdown
from cashflow_planner.infrastructure.database.models import SalesOpportunityRow
from cashflow_planner.infrastructure.database.repositories import SalesRepository

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_RATE = 20

EDITABLE_FIELDS = {
    "client_name",
    "project_type",
    "total_cents",
    "commission_rate",
    "payment_type",
    "month",
    "year",
    "status",
    "closed_date",
    "notes",
}


def validate_opportunity(fields: Dict[str, Any]) -> None:
    """Check opportunity fields; status is normalized to its plain value in place"""
    if not fields.get("project_type"):
        raise ValidationError("Project type is required")
    if fields.get("total_cents") is None or fields["total_cents"] <= 0:
        raise ValidationError("Sale amount must be positive")
    if not (fields.get("payment_type") or "").strip():
        raise ValidationError("Payment type is required")
    if not 1 <= (fields.get("month") or 0) <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not fields.get("year"):
        raise ValidationError("Year is required")
    if not 0 <= fields.get("commission_rate", DEFAULT_COMMISSION_RATE) <= 100:
        raise ValidationError("Commission rate must be between 0 and 100")
    try:
        fields["status"] = SalesStatus(fields.get("status", SalesStatus.OBJECTIVE.value)).value
    except ValueError:
        raise ValidationError(f"Unknown status: {fields.get('status')}")


class SalesService:
    def __init__(self, db: Session):
        self.db = db
        self.sales = SalesRepository(db)

    def get(self, opportunity_id: int) -> SalesOpportunityRow:
        row = self.sales.get(opportunity_id)
        if row is None:
            raise NotFoundError(f"Sales opportunity {opportunity_id} not found")
        return row

    def create(self, fields: Dict[str, Any]) -> SalesOpportunityRow:
        fields = {"commission_rate": DEFAULT_COMMISSION_RATE, "status": SalesStatus.OBJECTIVE.value, **fields}
        validate_opportunity(fields)
        row = self.sales.create(**fields)
        logger.info("Sales opportunity created", extra={"opportunity_id": row.id, "status": row.status})

        if row.status == SalesStatus.WON.value:
            self._generate_installments(row)
        return row

    def update(self, opportunity_id: int, changes: Dict[str, Any]) -> SalesOpportunityRow:
        """
        Apply changes; installments are generated on the transition into won.

        An opportunity that already has installments never gets a second set,
        even if it goes back and forth through won.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        row = self.get(opportunity_id)
        was_won = row.status == SalesStatus.WON.value
        current = {name: getattr(row, name) for name in EDITABLE_FIELDS}
        current.update(changes)
        validate_opportunity(current)

        for name in changes:
            setattr(row, name, current[name])
        self.db.flush()

        if not was_won and row.status == SalesStatus.WON.value:
            self._generate_installments(row)
        return row

    def _generate_installments(self, row: SalesOpportunityRow) -> int:
        if row.closed_date is None:
            logger.info("Won opportunity has no closing date, no installments", extra={"opportunity_id": row.id})
            return 0
        if self.sales.has_installments(row.id):
            logger.info("Installments already exist, not regenerating", extra={"opportunity_id": row.id})
            return 0

        installments = generate_sales_installments(row.total_cents, row.payment_type, row.closed_date)
        self.sales.add_installments(row, installments)
        logger.info(
            "Sales installments generated",
            extra={"opportunity_id": row.id, "installments": len(installments)},
        )
        return len(installments)

    def breakdown(self, opportunity_id: int) -> SalesBreakdown:
        row = self.get(opportunity_id)
        return calculate_sales_breakdown(row.total_cents, row.commission_rate)

    def delete(self, opportunity_id: int) -> None:
        row = self.get(opportunity_id)
        self.sales.soft_delete(row)
        logger.info("Sales opportunity deleted", extra={"opportunity_id": opportunity_id})

    def list_opportunities(self, year: int) -> list:
        return self.sales.list_for_year(year)
