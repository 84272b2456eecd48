"""/v1/contracts - Expected incomes and expenses"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from cashflow_planner.api.dependencies import get_request_id, get_today
from cashflow_planner.api.v1.schemas import (
    ContractCreate,
    ContractResponse,
    ContractUpdate,
    ContractWriteResponse,
    OccurrenceResponse,
    SyncSummary,
    TerminateRequest,
)
from cashflow_planner.domain.exceptions import DomainException
from cashflow_planner.domain.models import EntryType, RecurringContract
from cashflow_planner.domain.occurrences import annual_total, occurrences
from cashflow_planner.infrastructure.database.session import get_db
from cashflow_planner.services.contracts import ContractService, ContractWriteResult

router = APIRouter()


def _write_response(result: ContractWriteResult) -> ContractWriteResponse:
    return ContractWriteResponse(
        contract=ContractResponse.model_validate(result.contract),
        forecast=SyncSummary(**vars(result.forecast)),
        warnings=result.warnings,
    )


def _commit(db: Session, request: Request, action):
    """Run a contract write as one unit of work"""
    try:
        result = action()
        db.commit()
    except DomainException as e:
        db.rollback()
        logging.warning(f"Contract write rejected: {e}", extra={"request_id": get_request_id(request)})
        raise
    return _write_response(result)


@router.post("/contracts", response_model=ContractWriteResponse, status_code=201)
def create_contract(
    body: ContractCreate,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Create a recurring contract and generate its forecast entries.

    Forecast failures do not fail the request; they come back as warnings.
    """
    service = ContractService(db)
    return _commit(db, request, lambda: service.create(RecurringContract(**body.model_dump()), today))


@router.get("/contracts", response_model=List[ContractResponse])
def list_contracts(
    year: Optional[int] = Query(None, description="Only contracts active at some point in this year"),
    kind: Optional[EntryType] = None,
    center_id: Optional[int] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    contracts = ContractService(db).list_contracts(
        year=year, kind=kind, center_id=center_id, active_only=active_only
    )
    return [ContractResponse.model_validate(c) for c in contracts]


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
def get_contract(contract_id: int, db: Session = Depends(get_db)):
    return ContractResponse.model_validate(ContractService(db).get(contract_id))


@router.get("/contracts/{contract_id}/occurrences", response_model=OccurrenceResponse)
def get_occurrences(contract_id: int, year: int = Query(...), db: Session = Depends(get_db)):
    """Months of `year` in which the contract produces a cash event"""
    contract = ContractService(db).get(contract_id)
    return OccurrenceResponse(
        contract_id=contract_id,
        year=year,
        months=sorted(occurrences(contract, year)),
        annual_total_cents=annual_total(contract, year),
    )


@router.patch("/contracts/{contract_id}", response_model=ContractWriteResponse)
def update_contract(
    contract_id: int,
    body: ContractUpdate,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    service = ContractService(db)
    changes = body.model_dump(exclude_unset=True)
    return _commit(db, request, lambda: service.update(contract_id, changes, today))


@router.post("/contracts/{contract_id}/terminate", response_model=ContractWriteResponse)
def terminate_contract(
    contract_id: int,
    body: TerminateRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    service = ContractService(db)
    return _commit(db, request, lambda: service.terminate(contract_id, body.termination_date, today))


@router.delete("/contracts/{contract_id}", response_model=ContractWriteResponse)
def delete_contract(
    contract_id: int,
    request: Request,
    from_date: Optional[date] = Query(None, description="Delete entries from this date; defaults to today"),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    service = ContractService(db)
    return _commit(db, request, lambda: service.delete(contract_id, today, from_date))
