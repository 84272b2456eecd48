"""Split records for received payments"""

import logging

from sqlalchemy.orm import Session

from cashflow_planner.domain.exceptions import NotFoundError, SplitAlreadyExistsError, ValidationError
from cashflow_planner.domain.models import Transaction
from cashflow_planner.domain.splits import calculate_income_split, verify_split
from cashflow_planner.infrastructure.database.models import IncomeSplitRow
from cashflow_planner.infrastructure.database.repositories import SplitRepository, TransactionRepository
from cashflow_planner.infrastructure.observability.metrics import splits_created_counter
from cashflow_planner.utils.money import format_cents

logger = logging.getLogger(__name__)


class IncomeSplitService:
    def __init__(self, db: Session):
        self.db = db
        self.splits = SplitRepository(db)
        self.transactions = TransactionRepository(db)

    def create_split(self, transaction_id: int) -> IncomeSplitRow:
        """
        Split a received payment and book the outgoing transfer.

        The transfer (partner shares plus tax reserve) is recorded as a
        negative internal transfer linked to the receipt, so liquidity
        figures skip it.
        """
        receipt = self.transactions.get(transaction_id)
        if receipt is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if receipt.amount_cents <= 0:
            raise ValidationError("Only incoming payments can be split")
        if receipt.is_split or self.splits.get_by_transaction(transaction_id) is not None:
            raise SplitAlreadyExistsError(f"Transaction {transaction_id} is already split")

        split = calculate_income_split(receipt.amount_cents)
        if not verify_split(split):
            logger.warning(
                "Split shares drift from net beyond rounding tolerance",
                extra={"transaction_id": receipt.id, "net_cents": split.net_cents},
            )
        transfer = self.transactions.add(
            Transaction(
                date=receipt.date,
                amount_cents=-split.transfer_cents,
                description=f"Split transfer: {receipt.description or ''}".strip(),
                is_transfer=True,
            ),
            linked_transaction_id=receipt.id,
            notes=(
                f"A {format_cents(split.share_a_cents)} + B {format_cents(split.share_b_cents)}"
                f" + tax {format_cents(split.tax_cents)}"
            ),
        )

        row = self.splits.create(receipt.id, split, transfer.id)
        receipt.is_split = True
        self.db.flush()

        splits_created_counter.inc()
        logger.info(
            "Income split created",
            extra={"transaction_id": receipt.id, "net_cents": split.net_cents, "transfer_cents": split.transfer_cents},
        )
        return row

    def delete_split(self, transaction_id: int) -> None:
        row = self.splits.get_by_transaction(transaction_id)
        if row is None:
            raise NotFoundError(f"No split for transaction {transaction_id}")

        if row.transfer_transaction_id is not None:
            transfer = self.transactions.get(row.transfer_transaction_id)
            if transfer is not None:
                self.transactions.soft_delete(transfer)

        receipt = self.transactions.get(transaction_id)
        if receipt is not None:
            receipt.is_split = False
        self.splits.delete(row)

        logger.info("Income split deleted", extra={"transaction_id": transaction_id})

    def list_splits(self):
        return self.splits.list_splits()
