"""Payment plans: creation, regeneration, deletion and forecast promotion"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from cashflow_planner.domain.exceptions import IncomePromotionError, NotFoundError, ValidationError
from cashflow_planner.domain.installments import generate_installment_plan
from cashflow_planner.domain.models import EntryType, Installment, LifecycleState
from cashflow_planner.infrastructure.database.models import PaymentPlanRow
from cashflow_planner.infrastructure.database.repositories import ForecastRepository, PlanRepository
from cashflow_planner.infrastructure.observability.metrics import forecast_entries_deleted_counter
from cashflow_planner.utils.date_utils import add_months

logger = logging.getLogger(__name__)

# Changing any of these invalidates the unpaid part of the schedule
PLAN_SCHEDULE_FIELDS = ("total_cents", "installment_count", "installment_cents", "start_date")


@dataclass
class PlanDraft:
    """User input for a new plan"""

    creditor_name: str
    total_cents: int
    installment_count: int
    start_date: date
    installment_cents: Optional[int] = None
    notes: Optional[str] = None


class PaymentPlanService:
    def __init__(self, db: Session):
        self.db = db
        self.plans = PlanRepository(db)
        self.forecast = ForecastRepository(db)

    def get_plan(self, plan_id: int) -> PaymentPlanRow:
        plan = self.plans.get_plan_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Payment plan {plan_id} not found")
        return plan

    def create_plan(self, draft: PlanDraft) -> PaymentPlanRow:
        if not draft.creditor_name or not draft.creditor_name.strip():
            raise ValidationError("Creditor name is required")

        installments = generate_installment_plan(
            draft.total_cents,
            draft.installment_count,
            draft.start_date,
            installment_cents=draft.installment_cents,
        )
        plan = self.plans.create_plan(
            creditor_name=draft.creditor_name,
            total_cents=draft.total_cents,
            installment_cents=installments[0].amount_cents,
            start_date=draft.start_date,
            installments=installments,
            notes=draft.notes,
        )

        logger.info(
            "Payment plan created",
            extra={"plan_id": plan.id, "installments": len(installments), "total_cents": draft.total_cents},
        )
        return plan

    def update_plan(self, plan_id: int, changes: dict, regenerate: bool = False, full: bool = False) -> PaymentPlanRow:
        """
        Apply field changes to a plan.

        With regenerate (or any schedule field changed) the unpaid installments
        are rebuilt from what is still owed; paid installments keep their
        sequence and dates. With full=True every installment is rebuilt and
        the paid count is reset.
        """
        plan = self.get_plan(plan_id)
        allowed = {"creditor_name", "notes", *PLAN_SCHEDULE_FIELDS}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        schedule_touched = any(
            name in changes and changes[name] != getattr(plan, name) for name in PLAN_SCHEDULE_FIELDS
        )
        for name, value in changes.items():
            setattr(plan, name, value)

        if "creditor_name" in changes and not (plan.creditor_name or "").strip():
            raise ValidationError("Creditor name is required")

        if regenerate or full or schedule_touched:
            self._regenerate(plan, full, changes.get("installment_cents"))

        self.db.flush()
        return plan

    def _regenerate(self, plan: PaymentPlanRow, full: bool, explicit_amount: Optional[int]) -> None:
        if full:
            self.plans.delete_installments(plan, unpaid_only=False)
            plan.paid_installment_count = 0
            installments = generate_installment_plan(
                plan.total_cents, plan.installment_count, plan.start_date, installment_cents=explicit_amount
            )
        else:
            paid = [inst for inst in plan.installments if inst.is_paid]
            remaining_total = plan.total_cents - sum(inst.amount_cents for inst in paid)
            remaining_count = plan.installment_count - len(paid)
            if remaining_total < 0 or remaining_count < 0 or (remaining_total > 0) != (remaining_count > 0):
                raise ValidationError(
                    f"Plan of {plan.total_cents} in {plan.installment_count} installments does not fit "
                    f"{len(paid)} paid installments totalling {plan.total_cents - remaining_total}"
                )

            self.plans.delete_installments(plan, unpaid_only=True)
            if remaining_count == 0:
                installments = []
            else:
                # Unpaid tail continues after the latest paid due date
                tail_start = add_months(plan.start_date, len(paid))
                if paid:
                    tail_start = max(tail_start, add_months(max(inst.due_date for inst in paid), 1))
                installments = generate_installment_plan(
                    remaining_total,
                    remaining_count,
                    tail_start,
                    installment_cents=explicit_amount,
                    first_sequence=max((inst.sequence for inst in paid), default=0) + 1,
                )

        self.plans.add_installments(plan, installments)
        if installments:
            plan.installment_cents = installments[0].amount_cents
        plan.state = (
            LifecycleState.ENDED.value
            if plan.paid_installment_count >= plan.installment_count
            else LifecycleState.ACTIVE.value
        )
        logger.info(
            "Payment plan regenerated",
            extra={"plan_id": plan.id, "installments": len(installments), "full": full},
        )

    def delete_plan(self, plan_id: int) -> None:
        plan = self.get_plan(plan_id)
        self.plans.soft_delete_plan(plan)
        logger.info("Payment plan deleted", extra={"plan_id": plan_id})

    def promote_forecast_entry(
        self,
        entry_id: int,
        today: date,
        plan_id: Optional[int] = None,
        creditor_name: Optional[str] = None,
        installment_count: int = 1,
        start_date: Optional[date] = None,
    ) -> PaymentPlanRow:
        """
        Move a forecast expense into a payment plan.

        With plan_id the amount is appended as one more installment due a
        month after the plan's last one; otherwise a new plan for the entry's
        amount is created, named after the entry and starting on its date
        unless told otherwise. The forecast entry is soft-deleted once the
        plan holds it.
        """
        entry = self.forecast.get(entry_id)
        if entry is None:
            raise NotFoundError(f"Forecast entry {entry_id} not found")
        if entry.type != EntryType.EXPENSE:
            raise IncomePromotionError("Only expense entries can be moved into a payment plan")

        if plan_id is not None:
            plan = self._append_to_plan(plan_id, entry.amount_cents, today)
        else:
            plan = self.create_plan(
                PlanDraft(
                    creditor_name=creditor_name or entry.description,
                    total_cents=entry.amount_cents,
                    installment_count=installment_count,
                    start_date=start_date or entry.date,
                )
            )

        self.forecast.soft_delete(entry_id)
        forecast_entries_deleted_counter.labels(reason="promote").inc()
        logger.info("Forecast entry promoted", extra={"entry_id": entry_id, "plan_id": plan.id})
        return plan

    def _append_to_plan(self, plan_id: int, amount_cents: int, today: date) -> PaymentPlanRow:
        plan = self.get_plan(plan_id)
        last_due = max((inst.due_date for inst in plan.installments), default=None)
        due_date = add_months(last_due or today, 1)
        next_sequence = max((inst.sequence for inst in plan.installments), default=0) + 1

        self.plans.add_installments(
            plan, [Installment(due_date=due_date, amount_cents=amount_cents, sequence=next_sequence)]
        )
        plan.total_cents += amount_cents
        plan.installment_count += 1
        plan.state = LifecycleState.ACTIVE.value
        self.db.flush()
        return plan
