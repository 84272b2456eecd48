"""/v1/forecast - Forecast ledger entries"""

import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from cashflow_planner.api.dependencies import get_request_id, get_today
from cashflow_planner.api.v1.schemas import (
    ForecastEntryCreate,
    ForecastEntryResponse,
    ForecastEntryUpdate,
    PlanResponse,
    PromoteRequest,
)
from cashflow_planner.domain.exceptions import DomainException
from cashflow_planner.domain.models import ForecastEntry
from cashflow_planner.infrastructure.database.session import get_db
from cashflow_planner.services.forecast_entries import ForecastEntryService
from cashflow_planner.services.payment_plans import PaymentPlanService

router = APIRouter()


@router.get("/forecast", response_model=List[ForecastEntryResponse])
def list_forecast(year: int = Query(...), db: Session = Depends(get_db)):
    """Live forecast entries dated within `year`, generated and manual"""
    entries = ForecastEntryService(db).list_year(year)
    return [ForecastEntryResponse.model_validate(e) for e in entries]


@router.post("/forecast", response_model=ForecastEntryResponse, status_code=201)
def add_forecast_entry(body: ForecastEntryCreate, db: Session = Depends(get_db)):
    """Add a manual entry (no contract behind it)"""
    try:
        entry = ForecastEntryService(db).add_manual(ForecastEntry(**body.model_dump()))
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return ForecastEntryResponse.model_validate(entry)


@router.patch("/forecast/{entry_id}", response_model=ForecastEntryResponse)
def patch_forecast_entry(entry_id: int, body: ForecastEntryUpdate, db: Session = Depends(get_db)):
    """Edit date, amount, description or notes; source linkage is not editable"""
    try:
        entry = ForecastEntryService(db).patch(entry_id, body.model_dump(exclude_unset=True))
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return ForecastEntryResponse.model_validate(entry)


@router.delete("/forecast/{entry_id}", status_code=204)
def delete_forecast_entry(entry_id: int, db: Session = Depends(get_db)):
    try:
        ForecastEntryService(db).delete(entry_id)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return Response(status_code=204)


@router.post("/forecast/{entry_id}/promote", response_model=PlanResponse)
def promote_forecast_entry(
    entry_id: int,
    body: PromoteRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Move an expense entry into a payment plan.

    Appends to `plan_id` when given, otherwise opens a new plan for the
    entry's amount. Income entries are rejected with 409.
    """
    try:
        plan = PaymentPlanService(db).promote_forecast_entry(
            entry_id,
            today,
            plan_id=body.plan_id,
            creditor_name=body.creditor_name,
            installment_count=body.installment_count,
            start_date=body.start_date,
        )
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Promotion rejected: {e}", extra={"request_id": get_request_id(request)})
        raise
    return PlanResponse.model_validate(plan)
