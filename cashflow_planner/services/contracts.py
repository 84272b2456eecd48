"""Recurring contract lifecycle: create, edit, terminate, delete.

The contract write is the primary result. Forecast synchronization runs in a
savepoint afterwards; if it fails the savepoint is rolled back, the failure is
logged and returned as a warning, and the contract write stands.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cashflow_planner.domain.exceptions import (
    ContractDeletedError,
    NotFoundError,
    SynchronizationError,
    ValidationError,
)
from cashflow_planner.domain.models import EntryType, Frequency, LifecycleState, RecurringContract
from cashflow_planner.infrastructure.database.repositories import ContractRepository, ForecastRepository
from cashflow_planner.infrastructure.observability.logging import log_sync_failure
from cashflow_planner.infrastructure.observability.metrics import sync_failure_counter
from cashflow_planner.services.forecast_sync import ForecastSynchronizer, SyncResult
from cashflow_planner.utils.date_utils import end_of_previous_month

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "label",
    "amount_cents",
    "frequency",
    "expected_day",
    "start_date",
    "end_date",
    "center_id",
    "priority",
    "reliability",
    "notes",
    "is_active",
}


@dataclass
class ContractWriteResult:
    """Contract as written, plus what happened to its forecast entries"""

    contract: RecurringContract
    forecast: SyncResult = field(default_factory=SyncResult)
    warnings: List[str] = field(default_factory=list)


def validate_contract(contract: RecurringContract) -> None:
    """Reject malformed contracts before any schedule computation; enum fields are coerced in place"""
    if not contract.label or not contract.label.strip():
        raise ValidationError("Contract label is required")
    if contract.amount_cents is None or contract.amount_cents <= 0:
        raise ValidationError("Contract amount must be a positive number of cents")
    if contract.start_date is None:
        raise ValidationError("Contract start date is required")
    try:
        contract.frequency = Frequency(contract.frequency)
    except ValueError:
        raise ValidationError(f"Unknown frequency: {contract.frequency}")
    if contract.end_date is not None and contract.end_date < contract.start_date:
        raise ValidationError("Contract end date precedes its start date")
    if contract.expected_day is not None and not 1 <= contract.expected_day <= 31:
        raise ValidationError("Expected day must be between 1 and 31")
    try:
        contract.kind = EntryType(contract.kind)
    except ValueError:
        raise ValidationError(f"Unknown contract kind: {contract.kind}")


def lifecycle_state(contract: RecurringContract, today: date) -> LifecycleState:
    if contract.end_date is not None and contract.end_date < today:
        return LifecycleState.ENDED
    return LifecycleState.ACTIVE


class ContractService:
    """Applies user actions to contracts and keeps their forecast in sync"""

    def __init__(self, db: Session, synchronizer: Optional[ForecastSynchronizer] = None):
        self.db = db
        self.contracts = ContractRepository(db)
        self.synchronizer = synchronizer or ForecastSynchronizer(ForecastRepository(db))

    def _get(self, contract_id: int, for_update: bool = False) -> RecurringContract:
        """Live contract; writers lock its row until the unit of work ends"""
        contract = self.contracts.get(contract_id, for_update=for_update)
        if contract is None:
            if self.contracts.get(contract_id, include_deleted=True) is not None:
                raise ContractDeletedError(f"Contract {contract_id} has been deleted")
            raise NotFoundError(f"Contract {contract_id} not found")
        return contract

    def _sync(self, step: str, contract: RecurringContract, action: Callable[[], SyncResult]) -> ContractWriteResult:
        result = ContractWriteResult(contract=contract)
        try:
            with self.db.begin_nested():
                result.forecast = action()
        except (SQLAlchemyError, SynchronizationError) as e:
            sync_failure_counter.labels(step=step).inc()
            log_sync_failure(contract.id, step, e)
            result.warnings.append(f"Forecast not updated ({step}): {e}")
        return result

    def get(self, contract_id: int) -> RecurringContract:
        return self._get(contract_id)

    def list_contracts(self, **filters) -> List[RecurringContract]:
        return self.contracts.list_contracts(**filters)

    def create(self, contract: RecurringContract, today: date) -> ContractWriteResult:
        validate_contract(contract)
        contract.state = lifecycle_state(contract, today)
        stored = self.contracts.create(contract)

        logger.info("Contract created", extra={"contract_id": stored.id, "kind": stored.kind.value})
        return self._sync("create", stored, lambda: self.synchronizer.sync_created(stored, today))

    def update(self, contract_id: int, changes: Dict[str, Any], today: date) -> ContractWriteResult:
        """
        Apply field changes.

        Amount/label/tag edits patch future entries in place; schedule edits
        (frequency, day, start, end, activation) rebuild future entries.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        previous = self._get(contract_id, for_update=True)
        current = replace(previous, **changes)
        validate_contract(current)
        current.state = lifecycle_state(current, today)
        self.contracts.save(current)

        return self._sync("update", current, lambda: self.synchronizer.sync_updated(previous, current, today))

    def terminate(self, contract_id: int, termination_date: date, today: date) -> ContractWriteResult:
        """
        End the contract from the month of termination_date.

        The contract stays valid through the last day of the previous month.
        If that is before the contract even started, it never became active
        and is deleted together with all of its entries, past ones included.
        """
        contract = self._get(contract_id, for_update=True)
        new_end_date = end_of_previous_month(termination_date)

        if new_end_date < contract.start_date:
            contract.state = LifecycleState.DELETED
            self.contracts.save(contract)
            logger.info("Contract terminated before start, deleted", extra={"contract_id": contract.id})
            return self._sync("terminate", contract, lambda: self.synchronizer.remove(contract, None, "terminate"))

        contract.end_date = new_end_date
        contract.state = lifecycle_state(contract, today)
        self.contracts.save(contract)
        logger.info(
            "Contract terminated",
            extra={"contract_id": contract.id, "end_date": new_end_date.isoformat()},
        )
        return self._sync(
            "terminate", contract, lambda: self.synchronizer.remove(contract, termination_date, "terminate")
        )

    def delete(self, contract_id: int, today: date, from_date: Optional[date] = None) -> ContractWriteResult:
        """Soft-delete the contract and its entries from from_date (default today)"""
        contract = self._get(contract_id, for_update=True)
        contract.state = LifecycleState.DELETED
        self.contracts.save(contract)

        logger.info("Contract deleted", extra={"contract_id": contract.id})
        return self._sync("delete", contract, lambda: self.synchronizer.remove(contract, from_date or today, "delete"))
