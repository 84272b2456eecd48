"""Paid/unpaid state of payment plan installments"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from cashflow_planner.domain.exceptions import (
    InstallmentAlreadyPaidError,
    InstallmentNotPaidError,
    NotFoundError,
    ValidationError,
)
from cashflow_planner.domain.models import LifecycleState
from cashflow_planner.infrastructure.database.models import PaymentPlanInstallmentRow, PaymentPlanRow
from cashflow_planner.infrastructure.database.repositories import PlanRepository, TransactionRepository
from cashflow_planner.infrastructure.observability.metrics import (
    installment_payment_counter,
    plans_completed_counter,
)

logger = logging.getLogger(__name__)


@dataclass
class PlanSummary:
    plan_id: int
    total_cents: int
    paid_cents: int
    remaining_cents: int
    paid_installment_count: int
    installment_count: int
    next_due_date: Optional[date] = None
    next_due_cents: Optional[int] = None


class InstallmentTracker:
    """Marks installments paid or unpaid and keeps the plan counters in step"""

    def __init__(self, db: Session):
        self.db = db
        self.plans = PlanRepository(db)
        self.transactions = TransactionRepository(db)

    def _load(self, plan_id: int, installment_id: int) -> tuple[PaymentPlanRow, PaymentPlanInstallmentRow]:
        plan = self.plans.get_plan_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Payment plan {plan_id} not found")
        installment = self.plans.get_installment(installment_id)
        if installment is None or installment.plan_id != plan.id:
            raise NotFoundError(f"Installment {installment_id} not found in plan {plan_id}")
        return plan, installment

    def _refresh_state(self, plan: PaymentPlanRow) -> None:
        """Plan ends once every installment is paid and reopens when one is reversed"""
        self.plans.refresh(plan)
        was_active = plan.state == LifecycleState.ACTIVE.value
        if plan.paid_installment_count >= plan.installment_count:
            plan.state = LifecycleState.ENDED.value
            if was_active:
                plans_completed_counter.inc()
                logger.info("Payment plan fully paid", extra={"plan_id": plan.id})
        else:
            plan.state = LifecycleState.ACTIVE.value
        self.db.flush()

    def pay(
        self,
        plan_id: int,
        installment_id: int,
        paid_date: date,
        transaction_id: Optional[int] = None,
    ) -> PaymentPlanInstallmentRow:
        plan, installment = self._load(plan_id, installment_id)
        if installment.is_paid:
            raise InstallmentAlreadyPaidError(f"Installment {installment_id} is already paid")
        if transaction_id is not None and self.transactions.get(transaction_id) is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        installment.is_paid = True
        installment.paid_date = paid_date
        installment.transaction_id = transaction_id
        self.db.flush()

        self.plans.adjust_paid_count(plan.id, 1)
        self._refresh_state(plan)

        installment_payment_counter.labels(action="paid").inc()
        logger.info(
            "Installment paid",
            extra={"plan_id": plan.id, "installment_id": installment.id, "sequence": installment.sequence},
        )
        return installment

    def unpay(self, plan_id: int, installment_id: int) -> PaymentPlanInstallmentRow:
        plan, installment = self._load(plan_id, installment_id)
        if not installment.is_paid:
            raise InstallmentNotPaidError(f"Installment {installment_id} is not paid")

        installment.is_paid = False
        installment.paid_date = None
        installment.transaction_id = None
        self.db.flush()

        self.plans.adjust_paid_count(plan.id, -1)
        self._refresh_state(plan)

        installment_payment_counter.labels(action="reversed").inc()
        logger.info("Installment payment reversed", extra={"plan_id": plan.id, "installment_id": installment.id})
        return installment

    def reschedule(self, plan_id: int, installment_id: int, due_date: date) -> PaymentPlanInstallmentRow:
        """Move one due date; it must stay strictly between its neighbours"""
        plan, installment = self._load(plan_id, installment_id)

        previous_due = [i.due_date for i in plan.installments if i.sequence < installment.sequence]
        next_due = [i.due_date for i in plan.installments if i.sequence > installment.sequence]
        if previous_due and due_date <= max(previous_due):
            raise ValidationError("Due date must be after the previous installment")
        if next_due and due_date >= min(next_due):
            raise ValidationError("Due date must be before the next installment")

        installment.due_date = due_date
        self.db.flush()
        return installment

    def summary(self, plan_id: int) -> PlanSummary:
        plan = self.plans.get_plan_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Payment plan {plan_id} not found")

        paid_cents = sum(i.amount_cents for i in plan.installments if i.is_paid)
        upcoming = [i for i in plan.installments if not i.is_paid]
        next_installment = min(upcoming, key=lambda i: i.due_date) if upcoming else None

        return PlanSummary(
            plan_id=plan.id,
            total_cents=plan.total_cents,
            paid_cents=paid_cents,
            remaining_cents=plan.total_cents - paid_cents,
            paid_installment_count=plan.paid_installment_count,
            installment_count=plan.installment_count,
            next_due_date=next_installment.due_date if next_installment else None,
            next_due_cents=next_installment.amount_cents if next_installment else None,
        )
