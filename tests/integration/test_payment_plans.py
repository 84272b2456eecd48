"""Integration tests for payment plans, installment tracking and forecast promotion"""

import pytest
from datetime import date
from sqlalchemy.orm import Session
from cashflow_planner.domain.exceptions import (
    IncomePromotionError,
    InstallmentAlreadyPaidError,
    InstallmentNotPaidError,
    NotFoundError,
    ValidationError,
)
from cashflow_planner.domain.models import EntryType, ForecastEntry, Transaction
from cashflow_planner.infrastructure.database.repositories import ForecastRepository, TransactionRepository
from cashflow_planner.services.installment_tracker import InstallmentTracker
from cashflow_planner.services.payment_plans import PaymentPlanService, PlanDraft


@pytest.fixture
def plan(db: Session):
    """Tax debt of 1000.03 over three months"""
    plan = PaymentPlanService(db).create_plan(
        PlanDraft(creditor_name="Tax office", total_cents=100_003, installment_count=3, start_date=date(2026, 1, 1))
    )
    db.commit()
    return plan


def test_create_plan(plan):
    assert [i.amount_cents for i in plan.installments] == [33_334, 33_334, 33_335]
    assert [i.due_date for i in plan.installments] == [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)]
    assert plan.installment_cents == 33_334
    assert plan.installment_count == 3
    assert plan.paid_installment_count == 0
    assert plan.state == "active"


def test_create_plan_requires_creditor(db: Session):
    with pytest.raises(ValidationError):
        PaymentPlanService(db).create_plan(
            PlanDraft(creditor_name="", total_cents=1_000, installment_count=1, start_date=date(2026, 1, 1))
        )


def test_pay_all_installments_ends_plan(db: Session, plan):
    tracker = InstallmentTracker(db)
    for installment in list(plan.installments):
        tracker.pay(plan.id, installment.id, installment.due_date)
    db.commit()

    assert plan.paid_installment_count == 3
    assert plan.state == "ended"
    assert all(i.is_paid for i in plan.installments)


def test_unpay_reactivates_plan(db: Session, plan):
    tracker = InstallmentTracker(db)
    for installment in list(plan.installments):
        tracker.pay(plan.id, installment.id, installment.due_date)

    tracker.unpay(plan.id, plan.installments[-1].id)
    db.commit()

    assert plan.paid_installment_count == 2
    assert plan.state == "active"
    assert plan.installments[-1].paid_date is None


def test_double_pay_and_unpaid_reversal_rejected(db: Session, plan):
    tracker = InstallmentTracker(db)
    first = plan.installments[0]
    tracker.pay(plan.id, first.id, date(2026, 1, 2))

    with pytest.raises(InstallmentAlreadyPaidError):
        tracker.pay(plan.id, first.id, date(2026, 1, 3))
    with pytest.raises(InstallmentNotPaidError):
        tracker.unpay(plan.id, plan.installments[1].id)
    assert plan.paid_installment_count == 1


def test_pay_links_transaction(db: Session, plan):
    txn = TransactionRepository(db).add(Transaction(date(2026, 1, 2), -33_334, "Tax office"))
    installment = InstallmentTracker(db).pay(plan.id, plan.installments[0].id, txn.date, transaction_id=txn.id)
    assert installment.transaction_id == txn.id

    with pytest.raises(NotFoundError):
        InstallmentTracker(db).pay(plan.id, plan.installments[1].id, txn.date, transaction_id=9999)


def test_installment_from_other_plan_rejected(db: Session, plan):
    other = PaymentPlanService(db).create_plan(
        PlanDraft(creditor_name="Supplier", total_cents=5_000, installment_count=1, start_date=date(2026, 1, 1))
    )
    with pytest.raises(NotFoundError):
        InstallmentTracker(db).pay(plan.id, other.installments[0].id, date(2026, 1, 1))


def test_summary(db: Session, plan):
    tracker = InstallmentTracker(db)
    tracker.pay(plan.id, plan.installments[0].id, date(2026, 1, 1))

    summary = tracker.summary(plan.id)
    assert summary.paid_cents == 33_334
    assert summary.remaining_cents == 66_669
    assert summary.next_due_date == date(2026, 2, 1)
    assert summary.next_due_cents == 33_334


def test_reschedule_within_neighbours(db: Session, plan):
    tracker = InstallmentTracker(db)
    middle = plan.installments[1]

    assert tracker.reschedule(plan.id, middle.id, date(2026, 2, 15)).due_date == date(2026, 2, 15)
    with pytest.raises(ValidationError):
        tracker.reschedule(plan.id, middle.id, date(2026, 3, 1))
    with pytest.raises(ValidationError):
        tracker.reschedule(plan.id, middle.id, date(2025, 12, 31))


def test_regenerate_keeps_paid_installments(db: Session, plan):
    InstallmentTracker(db).pay(plan.id, plan.installments[0].id, date(2026, 1, 1))

    updated = PaymentPlanService(db).update_plan(plan.id, {"total_cents": 90_000})
    db.commit()

    amounts = [i.amount_cents for i in updated.installments]
    assert amounts[0] == 33_334
    assert sum(amounts) == 90_000
    assert [i.sequence for i in updated.installments] == [1, 2, 3]
    assert [i.due_date for i in updated.installments] == [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)]
    assert updated.installments[0].is_paid
    assert updated.paid_installment_count == 1


def test_regenerate_after_paying_last_installment_keeps_dates_increasing(db: Session, plan):
    InstallmentTracker(db).pay(plan.id, plan.installments[2].id, date(2026, 1, 10))

    updated = PaymentPlanService(db).update_plan(plan.id, {}, regenerate=True)
    db.commit()

    installments = sorted(updated.installments, key=lambda i: i.sequence)
    assert [i.sequence for i in installments] == [3, 4, 5]
    assert [i.due_date for i in installments] == [date(2026, 3, 1), date(2026, 4, 1), date(2026, 5, 1)]
    assert [i.is_paid for i in installments] == [True, False, False]
    assert sum(i.amount_cents for i in installments) == 100_003


@pytest.mark.parametrize(
    "changes",
    [
        {"total_cents": 30_000},  # less than already paid
        {"total_cents": 33_334},  # nothing left for two unpaid installments
        {"total_cents": 90_000, "installment_count": 1},  # money owed, no installment left
    ],
)
def test_regenerate_rejects_plan_that_does_not_fit_paid_history(db: Session, plan, changes):
    InstallmentTracker(db).pay(plan.id, plan.installments[0].id, date(2026, 1, 1))

    with pytest.raises(ValidationError):
        PaymentPlanService(db).update_plan(plan.id, changes)


def test_regenerate_down_to_paid_installments_ends_plan(db: Session, plan):
    InstallmentTracker(db).pay(plan.id, plan.installments[0].id, date(2026, 1, 1))

    updated = PaymentPlanService(db).update_plan(plan.id, {"total_cents": 33_334, "installment_count": 1})

    assert len(updated.installments) == 1
    assert updated.state == "ended"


def test_full_regeneration_resets_paid_count(db: Session, plan):
    InstallmentTracker(db).pay(plan.id, plan.installments[0].id, date(2026, 1, 1))

    updated = PaymentPlanService(db).update_plan(plan.id, {"installment_count": 4}, full=True)
    db.commit()

    assert updated.paid_installment_count == 0
    assert len(updated.installments) == 4
    assert not any(i.is_paid for i in updated.installments)
    assert sum(i.amount_cents for i in updated.installments) == 100_003


def test_cosmetic_update_keeps_schedule(db: Session, plan):
    ids = [i.id for i in plan.installments]
    updated = PaymentPlanService(db).update_plan(plan.id, {"notes": "Agreed by phone"})
    assert [i.id for i in updated.installments] == ids
    assert updated.notes == "Agreed by phone"


def test_delete_plan(db: Session, plan):
    service = PaymentPlanService(db)
    service.delete_plan(plan.id)
    with pytest.raises(NotFoundError):
        service.get_plan(plan.id)


def add_entry(db: Session, kind: EntryType, cents: int, on: date = date(2026, 7, 1)) -> ForecastEntry:
    return ForecastRepository(db).add(
        ForecastEntry(date=on, type=kind, amount_cents=cents, description="Supplier invoice")
    )


def test_promote_expense_to_new_plan(db: Session, today):
    entry = add_entry(db, EntryType.EXPENSE, 60_000)

    new_plan = PaymentPlanService(db).promote_forecast_entry(entry.id, today, installment_count=3)
    db.commit()

    assert new_plan.creditor_name == "Supplier invoice"
    assert new_plan.total_cents == 60_000
    assert [i.amount_cents for i in new_plan.installments] == [20_000, 20_000, 20_000]
    assert new_plan.installments[0].due_date == date(2026, 7, 1)
    assert ForecastRepository(db).get(entry.id) is None


def test_promote_appends_to_existing_plan(db: Session, plan, today):
    entry = add_entry(db, EntryType.EXPENSE, 12_000)

    updated = PaymentPlanService(db).promote_forecast_entry(entry.id, today, plan_id=plan.id)
    db.commit()

    assert updated.id == plan.id
    assert updated.installment_count == 4
    assert updated.total_cents == 112_003
    appended = updated.installments[-1]
    assert appended.sequence == 4
    assert appended.due_date == date(2026, 4, 1)
    assert appended.amount_cents == 12_000
    assert ForecastRepository(db).get(entry.id) is None


def test_promote_reopens_finished_plan(db: Session, plan, today):
    tracker = InstallmentTracker(db)
    for installment in list(plan.installments):
        tracker.pay(plan.id, installment.id, installment.due_date)
    entry = add_entry(db, EntryType.EXPENSE, 5_000)

    updated = PaymentPlanService(db).promote_forecast_entry(entry.id, today, plan_id=plan.id)
    assert updated.state == "active"


def test_promote_income_rejected(db: Session, today):
    entry = add_entry(db, EntryType.INCOME, 10_000)

    with pytest.raises(IncomePromotionError):
        PaymentPlanService(db).promote_forecast_entry(entry.id, today)
    assert ForecastRepository(db).get(entry.id) is not None


def test_promote_missing_entry(db: Session, today):
    with pytest.raises(NotFoundError):
        PaymentPlanService(db).promote_forecast_entry(404, today)
