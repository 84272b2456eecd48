"""/v1/transactions - Actual bank movements and income splits"""

import logging
import time
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from cashflow_planner.api.dependencies import get_feed_client, get_request_id
from cashflow_planner.api.v1.schemas import (
    ImportRequest,
    ImportResponse,
    SplitResponse,
    TransactionCreate,
    TransactionResponse,
)
from cashflow_planner.domain.exceptions import DomainException, TransactionFeedError, ValidationError
from cashflow_planner.domain.models import Transaction
from cashflow_planner.infrastructure.clients.transaction_feed import TransactionFeedClient
from cashflow_planner.infrastructure.database.repositories import TransactionRepository
from cashflow_planner.infrastructure.database.session import get_db
from cashflow_planner.infrastructure.observability.metrics import transaction_feed_failures_counter
from cashflow_planner.services.income_splits import IncomeSplitService

router = APIRouter()


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def record_transaction(body: TransactionCreate, db: Session = Depends(get_db)):
    """Record a manual transaction"""
    if body.amount_cents == 0:
        raise ValidationError("Transaction amount cannot be zero")
    row = TransactionRepository(db).add(Transaction(**body.model_dump()))
    db.commit()
    return TransactionResponse.model_validate(row)


@router.get("/transactions", response_model=List[TransactionResponse])
def list_transactions(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
):
    rows = TransactionRepository(db).rows_between(start_date, end_date)
    return [TransactionResponse.model_validate(r) for r in rows]


@router.post("/transactions/import", response_model=ImportResponse)
async def import_transactions(
    body: ImportRequest,
    request: Request,
    db: Session = Depends(get_db),
    feed_client: TransactionFeedClient = Depends(get_feed_client),
):
    """
    Pull transactions from the bank feed for a date range.

    Transactions already imported (same external id) are skipped.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    if body.end_date < body.start_date:
        raise ValidationError("end_date precedes start_date")

    try:
        transactions = await feed_client.get_transactions(body.start_date, body.end_date)
        created, skipped = TransactionRepository(db).import_transactions(transactions)
        db.commit()

    except TransactionFeedError as e:
        transaction_feed_failures_counter.inc()
        db.rollback()
        logging.error(f"Transaction feed error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Transaction feed unavailable")

    logging.info(
        "Transactions imported",
        extra={
            "request_id": request_id,
            "created": created,
            "skipped": skipped,
            "duration_ms": (time.time() - start_time) * 1000,
        },
    )
    return ImportResponse(created=created, skipped=skipped)


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    repo = TransactionRepository(db)
    row = repo.get(transaction_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    repo.soft_delete(row)
    db.commit()
    return Response(status_code=204)


@router.post("/transactions/{transaction_id}/split", response_model=SplitResponse, status_code=201)
def split_transaction(transaction_id: int, db: Session = Depends(get_db)):
    """Split a receipt into shares and book the transfer of partner shares plus tax"""
    try:
        split = IncomeSplitService(db).create_split(transaction_id)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return SplitResponse.model_validate(split)


@router.delete("/transactions/{transaction_id}/split", status_code=204)
def delete_split(transaction_id: int, db: Session = Depends(get_db)):
    try:
        IncomeSplitService(db).delete_split(transaction_id)
        db.commit()
    except DomainException:
        db.rollback()
        raise
    return Response(status_code=204)


@router.get("/splits", response_model=List[SplitResponse])
def list_splits(db: Session = Depends(get_db)):
    return [SplitResponse.model_validate(s) for s in IncomeSplitService(db).list_splits()]
