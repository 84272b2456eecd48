"""Integration tests for income split records"""

import logging
import pytest
from datetime import date
from unittest.mock import patch
from sqlalchemy.orm import Session
from cashflow_planner.domain.exceptions import NotFoundError, SplitAlreadyExistsError, ValidationError
from cashflow_planner.domain.models import IncomeSplit, Transaction
from cashflow_planner.infrastructure.database.repositories import TransactionRepository
from cashflow_planner.services.income_splits import IncomeSplitService


@pytest.fixture
def receipt(db: Session):
    row = TransactionRepository(db).add(Transaction(date(2026, 3, 5), 122_000, "Invoice 12/2026"))
    db.commit()
    return row


def test_split_books_transfer(db: Session, receipt):
    split = IncomeSplitService(db).create_split(receipt.id)
    db.commit()

    assert split.net_cents == 100_000
    assert (split.share_a_cents, split.share_b_cents, split.share_c_cents) == (10_000, 20_000, 70_000)
    assert split.tax_cents == 22_000
    assert receipt.is_split

    transfer = TransactionRepository(db).get(split.transfer_transaction_id)
    assert transfer.amount_cents == -52_000
    assert transfer.is_transfer
    assert transfer.linked_transaction_id == receipt.id
    assert transfer.date == receipt.date
    assert "100,00 €" in transfer.notes


def test_transfer_excluded_from_liquidity_inputs(db: Session, receipt):
    IncomeSplitService(db).create_split(receipt.id)

    movements = TransactionRepository(db).list_between(date(2026, 3, 1), date(2026, 3, 31))
    assert [t.amount_cents for t in movements] == [122_000]


def test_split_only_once(db: Session, receipt):
    service = IncomeSplitService(db)
    service.create_split(receipt.id)

    with pytest.raises(SplitAlreadyExistsError):
        service.create_split(receipt.id)


def test_outgoing_payment_cannot_be_split(db: Session):
    payment = TransactionRepository(db).add(Transaction(date(2026, 3, 5), -5_000, "Rent"))
    with pytest.raises(ValidationError):
        IncomeSplitService(db).create_split(payment.id)


def test_delete_split_restores_receipt(db: Session, receipt):
    service = IncomeSplitService(db)
    split = service.create_split(receipt.id)
    transfer_id = split.transfer_transaction_id

    service.delete_split(receipt.id)
    db.commit()

    assert not receipt.is_split
    assert TransactionRepository(db).get(transfer_id) is None
    assert service.list_splits() == []

    # Can be split again afterwards
    assert service.create_split(receipt.id).net_cents == 100_000


def test_missing_transaction(db: Session):
    with pytest.raises(NotFoundError):
        IncomeSplitService(db).create_split(42)
    with pytest.raises(NotFoundError):
        IncomeSplitService(db).delete_split(42)


def test_drifting_split_is_logged(db: Session, receipt, caplog):
    drifted = IncomeSplit(122_000, 100_000, 10_000, 20_000, 60_000, 22_000)
    with patch("cashflow_planner.services.income_splits.calculate_income_split", return_value=drifted):
        with caplog.at_level(logging.WARNING, logger="cashflow_planner.services.income_splits"):
            IncomeSplitService(db).create_split(receipt.id)

    assert "drift" in caplog.text


def test_exact_split_is_not_logged(db: Session, receipt, caplog):
    with caplog.at_level(logging.WARNING, logger="cashflow_planner.services.income_splits"):
        IncomeSplitService(db).create_split(receipt.id)

    assert "drift" not in caplog.text
