"""/v1/plans - Payment plans and installment tracking"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from cashflow_planner.api.dependencies import get_today
from cashflow_planner.api.v1.schemas import (
    InstallmentSchema,
    PayRequest,
    PlanCreate,
    PlanResponse,
    PlanSummaryResponse,
    PlanUpdate,
    RescheduleRequest,
)
from cashflow_planner.domain.exceptions import DomainException
from cashflow_planner.infrastructure.database.repositories import PlanRepository
from cashflow_planner.infrastructure.database.session import get_db
from cashflow_planner.services.installment_tracker import InstallmentTracker
from cashflow_planner.services.payment_plans import PaymentPlanService, PlanDraft

router = APIRouter()


@router.post("/plans", response_model=PlanResponse, status_code=201)
def create_plan(body: PlanCreate, db: Session = Depends(get_db)):
    """
    Create a payment plan.

    Installments fall due monthly from start_date; the last one absorbs
    rounding so the schedule sums to total_cents exactly.
    """
    try:
        plan = PaymentPlanService(db).create_plan(PlanDraft(**body.model_dump()))
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return PlanResponse.model_validate(plan)


@router.get("/plans", response_model=List[PlanResponse])
def list_plans(active_only: bool = Query(False), db: Session = Depends(get_db)):
    return [PlanResponse.model_validate(p) for p in PlanRepository(db).list_plans(active_only=active_only)]


@router.get("/plans/{plan_id}", response_model=PlanResponse)
def get_plan(plan_id: int, db: Session = Depends(get_db)):
    """Retrieve payment plan with installment schedule"""
    return PlanResponse.model_validate(PaymentPlanService(db).get_plan(plan_id))


@router.get("/plans/{plan_id}/summary", response_model=PlanSummaryResponse)
def get_plan_summary(plan_id: int, db: Session = Depends(get_db)):
    return PlanSummaryResponse.model_validate(InstallmentTracker(db).summary(plan_id))


@router.patch("/plans/{plan_id}", response_model=PlanResponse)
def update_plan(plan_id: int, body: PlanUpdate, db: Session = Depends(get_db)):
    changes = body.model_dump(exclude_unset=True, exclude={"regenerate", "full"})
    try:
        plan = PaymentPlanService(db).update_plan(plan_id, changes, regenerate=body.regenerate, full=body.full)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return PlanResponse.model_validate(plan)


@router.delete("/plans/{plan_id}", status_code=204)
def delete_plan(plan_id: int, db: Session = Depends(get_db)):
    try:
        PaymentPlanService(db).delete_plan(plan_id)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return Response(status_code=204)


@router.post("/plans/{plan_id}/installments/{installment_id}/pay", response_model=InstallmentSchema)
def pay_installment(
    plan_id: int,
    installment_id: int,
    body: PayRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    try:
        installment = InstallmentTracker(db).pay(
            plan_id, installment_id, body.paid_date or today, transaction_id=body.transaction_id
        )
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return InstallmentSchema.model_validate(installment)


@router.post("/plans/{plan_id}/installments/{installment_id}/unpay", response_model=InstallmentSchema)
def unpay_installment(plan_id: int, installment_id: int, db: Session = Depends(get_db)):
    try:
        installment = InstallmentTracker(db).unpay(plan_id, installment_id)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return InstallmentSchema.model_validate(installment)


@router.patch("/plans/{plan_id}/installments/{installment_id}", response_model=InstallmentSchema)
def reschedule_installment(
    plan_id: int,
    installment_id: int,
    body: RescheduleRequest,
    db: Session = Depends(get_db),
):
    try:
        installment = InstallmentTracker(db).reschedule(plan_id, installment_id, body.due_date)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return InstallmentSchema.model_validate(installment)
