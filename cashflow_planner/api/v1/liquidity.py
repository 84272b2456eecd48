"""/v1/liquidity - Monthly liquidity curve and short-term cash outlook"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cashflow_planner.api.dependencies import get_today
from cashflow_planner.api.v1.schemas import (
    CashflowResponse,
    LiquidityPointSchema,
    LiquidityResponse,
    LiquiditySettings,
)
from cashflow_planner.domain.exceptions import DomainException
from cashflow_planner.domain.models import PhaseThresholds
from cashflow_planner.infrastructure.database.session import get_db
from cashflow_planner.services.liquidity import LiquidityService

router = APIRouter()


@router.get("/liquidity", response_model=LiquidityResponse)
def get_liquidity(
    year: Optional[int] = Query(None),
    current_month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Monthly liquidity curve for a year.

    Defaults to the current year and month. Phase is read from the running
    balance at current_month.
    """
    projection = LiquidityService(db).project(year or today.year, current_month or today.month)
    return LiquidityResponse(
        year=projection.year,
        current_month=projection.current_month,
        opening_balance_cents=projection.opening_balance_cents,
        closing_balance_cents=projection.closing_balance_cents,
        total_margin_cents=projection.total_margin_cents,
        phase=projection.phase.value,
        points=[LiquidityPointSchema.model_validate(p) for p in projection.points],
    )


@router.get("/cashflow", response_model=CashflowResponse)
def get_cashflow(
    as_of: Optional[date] = Query(None),
    horizon_days: int = Query(90, ge=1, le=730),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """First day an upcoming expense can't be covered, and revenue still needed"""
    outlook = LiquidityService(db).outlook(as_of or today, horizon_days)
    return CashflowResponse(
        as_of=outlook.as_of,
        balance_cents=outlook.balance_cents,
        upcoming_expenses_cents=outlook.upcoming_expenses_cents,
        difficulty_date=outlook.difficulty.date,
        days_until_difficulty=outlook.difficulty.days_until,
        closing_balance_cents=outlook.difficulty.closing_balance_cents,
        required_revenue_cents=outlook.required_revenue_cents,
    )


@router.get("/liquidity/settings", response_model=LiquiditySettings)
def get_liquidity_settings(db: Session = Depends(get_db)):
    service = LiquidityService(db)
    thresholds = service.thresholds()
    return LiquiditySettings(
        opening_balance_cents=service.opening_balance(),
        defense_threshold_cents=thresholds.defense_cents,
        attack_threshold_cents=thresholds.attack_cents,
        growth_threshold_cents=thresholds.growth_cents,
    )


@router.put("/liquidity/settings", response_model=LiquiditySettings)
def update_liquidity_settings(body: LiquiditySettings, db: Session = Depends(get_db)):
    """Override opening balance and phase thresholds; omitted values keep their current setting"""
    service = LiquidityService(db)
    current = service.thresholds()
    thresholds = PhaseThresholds(
        defense_cents=current.defense_cents if body.defense_threshold_cents is None else body.defense_threshold_cents,
        attack_cents=current.attack_cents if body.attack_threshold_cents is None else body.attack_threshold_cents,
        growth_cents=current.growth_cents if body.growth_threshold_cents is None else body.growth_threshold_cents,
    )
    try:
        service.update_settings(opening_balance_cents=body.opening_balance_cents, thresholds=thresholds)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return get_liquidity_settings(db)
