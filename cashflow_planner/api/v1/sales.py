"""/v1/sales - Sales pipeline"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from cashflow_planner.api.v1.schemas import SalesBreakdownResponse, SalesCreate, SalesResponse, SalesUpdate
from cashflow_planner.domain.exceptions import DomainException
from cashflow_planner.infrastructure.database.session import get_db
from cashflow_planner.services.sales import SalesService

router = APIRouter()


@router.post("/sales", response_model=SalesResponse, status_code=201)
def create_opportunity(body: SalesCreate, db: Session = Depends(get_db)):
    try:
        row = SalesService(db).create(body.model_dump())
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return SalesResponse.model_validate(row)


@router.get("/sales", response_model=List[SalesResponse])
def list_opportunities(year: int = Query(...), db: Session = Depends(get_db)):
    return [SalesResponse.model_validate(r) for r in SalesService(db).list_opportunities(year)]


@router.get("/sales/{opportunity_id}", response_model=SalesResponse)
def get_opportunity(opportunity_id: int, db: Session = Depends(get_db)):
    return SalesResponse.model_validate(SalesService(db).get(opportunity_id))


@router.patch("/sales/{opportunity_id}", response_model=SalesResponse)
def update_opportunity(opportunity_id: int, body: SalesUpdate, db: Session = Depends(get_db)):
    """
    Update an opportunity.

    Moving it to won with a closing date generates its installments once,
    following its payment type.
    """
    try:
        row = SalesService(db).update(opportunity_id, body.model_dump(exclude_unset=True))
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return SalesResponse.model_validate(row)


@router.get("/sales/{opportunity_id}/breakdown", response_model=SalesBreakdownResponse)
def get_breakdown(opportunity_id: int, db: Session = Depends(get_db)):
    """Net, commission, tax, partner and available parts of the sale"""
    return SalesBreakdownResponse.model_validate(SalesService(db).breakdown(opportunity_id))


@router.delete("/sales/{opportunity_id}", status_code=204)
def delete_opportunity(opportunity_id: int, db: Session = Depends(get_db)):
    try:
        SalesService(db).delete(opportunity_id)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return Response(status_code=204)
