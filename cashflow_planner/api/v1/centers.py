"""/v1/centers - Yearly expected vs. actual per revenue or cost center"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cashflow_planner.api.dependencies import get_today
from cashflow_planner.api.v1.schemas import CenterReportResponse, CenterSummarySchema
from cashflow_planner.domain.models import EntryType
from cashflow_planner.infrastructure.database.session import get_db
from cashflow_planner.services.center_report import CenterReportService

router = APIRouter()


@router.get("/centers/report", response_model=CenterReportResponse)
def get_center_report(
    year: Optional[int] = Query(None),
    kind: EntryType = Query(EntryType.INCOME),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Revenue centers (kind=income) or cost centers (kind=expense) for a year"""
    report = CenterReportService(db).report(year or today.year, kind)
    return CenterReportResponse(
        year=report.year,
        kind=report.kind,
        centers=[CenterSummarySchema.model_validate(c) for c in report.centers],
        monthly_totals_cents=report.monthly_totals_cents,
        expected_cents=report.expected_cents,
        actual_cents=report.actual_cents,
        variance_cents=report.variance_cents,
    )
