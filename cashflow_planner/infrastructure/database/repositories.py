"""Data access layer for planning entities"""

from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from cashflow_planner.domain.models import (
    EntryType,
    ForecastEntry,
    Frequency,
    IncomeSplit,
    Installment,
    LifecycleState,
    RecurringContract,
    SourceType,
    Transaction,
)
from cashflow_planner.infrastructure.database.models import (
    ForecastEntryRow,
    IncomeSplitRow,
    PaymentPlanInstallmentRow,
    PaymentPlanRow,
    RecurringContractRow,
    SalesInstallmentRow,
    SalesOpportunityRow,
    SettingRow,
    TransactionRow,
)

DELETED = LifecycleState.DELETED.value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def contract_from_row(row: RecurringContractRow) -> RecurringContract:
    return RecurringContract(
        id=row.id,
        kind=EntryType(row.kind),
        label=row.label,
        amount_cents=row.amount_cents,
        frequency=Frequency(row.frequency),
        start_date=row.start_date,
        end_date=row.end_date,
        expected_day=row.expected_day,
        center_id=row.center_id,
        priority=row.priority,
        reliability=row.reliability,
        notes=row.notes,
        is_active=row.is_active,
        state=LifecycleState(row.state),
    )


def entry_from_row(row: ForecastEntryRow) -> ForecastEntry:
    return ForecastEntry(
        id=row.id,
        date=row.date,
        type=EntryType(row.type),
        amount_cents=row.amount_cents,
        description=row.description,
        source_type=SourceType(row.source_type) if row.source_type else None,
        source_id=row.source_id,
        center_id=row.center_id,
        priority=row.priority,
        reliability=row.reliability,
        notes=row.notes,
        state=LifecycleState(row.state),
    )


def transaction_from_row(row: TransactionRow) -> Transaction:
    return Transaction(
        date=row.date,
        amount_cents=row.amount_cents,
        description=row.description or "",
        external_id=row.external_id,
        is_transfer=row.is_transfer,
        center_id=row.center_id,
    )


class ContractRepository:
    """Repository for recurring contracts (expected incomes and expenses)"""

    def __init__(self, db: Session):
        self.db = db

    def _row(
        self, contract_id: int, include_deleted: bool = False, for_update: bool = False
    ) -> Optional[RecurringContractRow]:
        query = self.db.query(RecurringContractRow).filter(RecurringContractRow.id == contract_id)
        if not include_deleted:
            query = query.filter(RecurringContractRow.state != DELETED)
        if for_update:
            # Serializes writers of one contract and its ledger entries; no-op on SQLite
            query = query.with_for_update()
        return query.first()

    def create(self, contract: RecurringContract) -> RecurringContract:
        row = RecurringContractRow(
            kind=contract.kind.value,
            label=contract.label,
            center_id=contract.center_id,
            amount_cents=contract.amount_cents,
            frequency=contract.frequency.value,
            expected_day=contract.expected_day,
            start_date=contract.start_date,
            end_date=contract.end_date,
            priority=contract.priority,
            reliability=contract.reliability,
            notes=contract.notes,
            is_active=contract.is_active,
            state=contract.state.value,
        )
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return contract_from_row(row)

    def get(
        self, contract_id: int, include_deleted: bool = False, for_update: bool = False
    ) -> Optional[RecurringContract]:
        row = self._row(contract_id, include_deleted, for_update)
        return contract_from_row(row) if row else None

    def save(self, contract: RecurringContract) -> None:
        """Write every mutable field of the contract back to its row"""
        row = self._row(contract.id, include_deleted=True)
        row.label = contract.label
        row.center_id = contract.center_id
        row.amount_cents = contract.amount_cents
        row.frequency = contract.frequency.value
        row.expected_day = contract.expected_day
        row.start_date = contract.start_date
        row.end_date = contract.end_date
        row.priority = contract.priority
        row.reliability = contract.reliability
        row.notes = contract.notes
        row.is_active = contract.is_active
        row.state = contract.state.value
        if contract.state == LifecycleState.DELETED and row.deleted_at is None:
            row.deleted_at = _now()
        self.db.flush()

    def list_contracts(
        self,
        year: Optional[int] = None,
        kind: Optional[EntryType] = None,
        center_id: Optional[int] = None,
        active_only: bool = False,
    ) -> List[RecurringContract]:
        """Non-deleted contracts, optionally overlapping `year`"""
        query = self.db.query(RecurringContractRow).filter(RecurringContractRow.state != DELETED)
        if kind is not None:
            query = query.filter(RecurringContractRow.kind == kind.value)
        if center_id is not None:
            query = query.filter(RecurringContractRow.center_id == center_id)
        if active_only:
            query = query.filter(RecurringContractRow.is_active.is_(True))
        if year is not None:
            query = query.filter(
                RecurringContractRow.start_date <= date(year, 12, 31),
                (RecurringContractRow.end_date.is_(None)) | (RecurringContractRow.end_date >= date(year, 1, 1)),
            )
        rows = query.order_by(RecurringContractRow.label).all()
        return [contract_from_row(r) for r in rows]


class ForecastRepository:
    """Repository for the forecast ledger"""

    def __init__(self, db: Session):
        self.db = db

    def _live(self):
        return self.db.query(ForecastEntryRow).filter(ForecastEntryRow.state != DELETED)

    def _for_source(self, source_type: SourceType, source_id: int, from_date: Optional[date] = None):
        query = self._live().filter(
            ForecastEntryRow.source_type == source_type.value,
            ForecastEntryRow.source_id == source_id,
        )
        if from_date is not None:
            query = query.filter(ForecastEntryRow.date >= from_date)
        return query

    def exists_for_source(self, source_type: SourceType, source_id: int, on: date) -> bool:
        return (
            self._for_source(source_type, source_id).filter(ForecastEntryRow.date == on).first()
            is not None
        )

    def add(self, entry: ForecastEntry) -> ForecastEntry:
        row = ForecastEntryRow(
            date=entry.date,
            type=entry.type.value,
            amount_cents=entry.amount_cents,
            description=entry.description,
            source_type=entry.source_type.value if entry.source_type else None,
            source_id=entry.source_id,
            center_id=entry.center_id,
            priority=entry.priority,
            reliability=entry.reliability,
            notes=entry.notes,
            state=LifecycleState.ACTIVE.value,
        )
        self.db.add(row)
        self.db.flush()
        return entry_from_row(row)

    def get(self, entry_id: int) -> Optional[ForecastEntry]:
        row = self._live().filter(ForecastEntryRow.id == entry_id).first()
        return entry_from_row(row) if row else None

    def patch(self, entry_id: int, fields: Dict[str, object]) -> Optional[ForecastEntry]:
        row = self._live().filter(ForecastEntryRow.id == entry_id).first()
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        self.db.flush()
        return entry_from_row(row)

    def soft_delete(self, entry_id: int) -> bool:
        count = (
            self._live()
            .filter(ForecastEntryRow.id == entry_id)
            .update({"state": DELETED, "deleted_at": _now()}, synchronize_session="fetch")
        )
        return count > 0

    def patch_source_entries(
        self,
        source_type: SourceType,
        source_id: int,
        from_date: date,
        fields: Dict[str, object],
    ) -> int:
        """Patch generated entries dated on/after from_date; returns rows touched"""
        return self._for_source(source_type, source_id, from_date).update(
            dict(fields, updated_at=_now()), synchronize_session="fetch"
        )

    def soft_delete_source_entries(
        self,
        source_type: SourceType,
        source_id: int,
        from_date: Optional[date] = None,
    ) -> int:
        """Soft-delete generated entries, all of them when from_date is None"""
        return self._for_source(source_type, source_id, from_date).update(
            {"state": DELETED, "deleted_at": _now()}, synchronize_session="fetch"
        )

    def list_by_source(self, source_type: SourceType, source_id: int) -> List[ForecastEntry]:
        rows = self._for_source(source_type, source_id).order_by(ForecastEntryRow.date).all()
        return [entry_from_row(r) for r in rows]

    def list_between(self, start: date, end: date) -> List[ForecastEntry]:
        rows = (
            self._live()
            .filter(ForecastEntryRow.date >= start, ForecastEntryRow.date <= end)
            .order_by(ForecastEntryRow.date, ForecastEntryRow.id)
            .all()
        )
        return [entry_from_row(r) for r in rows]


class PlanRepository:
    """Repository for payment plans and their installments"""

    def __init__(self, db: Session):
        self.db = db

    def create_plan(
        self,
        creditor_name: str,
        total_cents: int,
        installment_cents: int,
        start_date: date,
        installments: List[Installment],
        notes: Optional[str] = None,
    ) -> PaymentPlanRow:
        """Create payment plan with installments"""
        db_plan = PaymentPlanRow(
            creditor_name=creditor_name,
            total_cents=total_cents,
            installment_cents=installment_cents,
            installment_count=len(installments),
            paid_installment_count=0,
            start_date=start_date,
            notes=notes,
            state=LifecycleState.ACTIVE.value,
        )
        self.db.add(db_plan)
        self.db.flush()

        self.add_installments(db_plan, installments)
        return db_plan

    def add_installments(self, plan: PaymentPlanRow, installments: Iterable[Installment]) -> None:
        for inst in installments:
            plan.installments.append(
                PaymentPlanInstallmentRow(
                    sequence=inst.sequence,
                    due_date=inst.due_date,
                    amount_cents=inst.amount_cents,
                    is_paid=False,
                )
            )
        self.db.flush()

    def get_plan_by_id(self, plan_id: int) -> Optional[PaymentPlanRow]:
        """Fetch plan with installments"""
        return (
            self.db.query(PaymentPlanRow)
            .filter(PaymentPlanRow.id == plan_id, PaymentPlanRow.state != DELETED)
            .first()
        )

    def list_plans(self, active_only: bool = False) -> List[PaymentPlanRow]:
        query = self.db.query(PaymentPlanRow).filter(PaymentPlanRow.state != DELETED)
        if active_only:
            query = query.filter(PaymentPlanRow.state == LifecycleState.ACTIVE.value)
        return query.order_by(PaymentPlanRow.start_date).all()

    def get_installment(self, installment_id: int) -> Optional[PaymentPlanInstallmentRow]:
        return (
            self.db.query(PaymentPlanInstallmentRow)
            .filter(PaymentPlanInstallmentRow.id == installment_id)
            .first()
        )

    def delete_installments(self, plan: PaymentPlanRow, unpaid_only: bool = True) -> int:
        """Drop installments through the delete-orphan cascade; paid ones survive unless unpaid_only=False"""
        doomed = [inst for inst in plan.installments if not (unpaid_only and inst.is_paid)]
        for inst in doomed:
            plan.installments.remove(inst)
        self.db.flush()
        return len(doomed)

    def adjust_paid_count(self, plan_id: int, delta: int) -> None:
        """Atomic increment/decrement of the paid counter in SQL"""
        self.db.query(PaymentPlanRow).filter(PaymentPlanRow.id == plan_id).update(
            {"paid_installment_count": PaymentPlanRow.paid_installment_count + delta},
            synchronize_session="fetch",
        )
        self.db.flush()

    def refresh(self, plan: PaymentPlanRow) -> PaymentPlanRow:
        self.db.refresh(plan)
        return plan

    def soft_delete_plan(self, plan: PaymentPlanRow) -> None:
        plan.state = DELETED
        plan.deleted_at = _now()
        self.db.flush()


class SalesRepository:
    """Repository for sales opportunities"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields) -> SalesOpportunityRow:
        row = SalesOpportunityRow(**fields)
        self.db.add(row)
        self.db.flush()
        return row

    def get(self, opportunity_id: int) -> Optional[SalesOpportunityRow]:
        return (
            self.db.query(SalesOpportunityRow)
            .filter(SalesOpportunityRow.id == opportunity_id, SalesOpportunityRow.deleted_at.is_(None))
            .first()
        )

    def list_for_year(self, year: int) -> List[SalesOpportunityRow]:
        return (
            self.db.query(SalesOpportunityRow)
            .filter(SalesOpportunityRow.year == year, SalesOpportunityRow.deleted_at.is_(None))
            .order_by(SalesOpportunityRow.month, SalesOpportunityRow.id)
            .all()
        )

    def has_installments(self, opportunity_id: int) -> bool:
        return (
            self.db.query(SalesInstallmentRow.id)
            .filter(SalesInstallmentRow.opportunity_id == opportunity_id)
            .first()
            is not None
        )

    def add_installments(self, opportunity: SalesOpportunityRow, installments: Iterable[Installment]) -> None:
        for inst in installments:
            opportunity.installments.append(
                SalesInstallmentRow(sequence=inst.sequence, due_date=inst.due_date, amount_cents=inst.amount_cents)
            )
        self.db.flush()

    def soft_delete(self, row: SalesOpportunityRow) -> None:
        row.deleted_at = _now()
        self.db.flush()


class TransactionRepository:
    """Repository for actual bank transactions"""

    def __init__(self, db: Session):
        self.db = db

    def _live(self):
        return self.db.query(TransactionRow).filter(TransactionRow.deleted_at.is_(None))

    def add(self, transaction: Transaction, **extra) -> TransactionRow:
        row = TransactionRow(
            external_id=transaction.external_id,
            date=transaction.date,
            description=transaction.description,
            amount_cents=transaction.amount_cents,
            is_transfer=transaction.is_transfer,
            center_id=transaction.center_id,
            **extra,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def get(self, transaction_id: int) -> Optional[TransactionRow]:
        return self._live().filter(TransactionRow.id == transaction_id).first()

    def import_transactions(self, transactions: Iterable[Transaction]) -> Tuple[int, int]:
        """Insert transactions not seen before (by external id); returns (created, skipped)"""
        created = skipped = 0
        for txn in transactions:
            if txn.external_id and (
                self.db.query(TransactionRow.id).filter(TransactionRow.external_id == txn.external_id).first()
            ):
                skipped += 1
                continue
            self.add(txn)
            created += 1
        return created, skipped

    def rows_between(self, start: date, end: date, include_transfers: bool = True) -> List[TransactionRow]:
        query = self._live().filter(TransactionRow.date >= start, TransactionRow.date <= end)
        if not include_transfers:
            query = query.filter(TransactionRow.is_transfer.is_(False))
        return query.order_by(TransactionRow.date, TransactionRow.id).all()

    def list_between(self, start: date, end: date, include_transfers: bool = False) -> List[Transaction]:
        return [transaction_from_row(r) for r in self.rows_between(start, end, include_transfers)]

    def list_for_center(self, center_id: int, start: date, end: date) -> List[Transaction]:
        rows = (
            self._live()
            .filter(
                TransactionRow.center_id == center_id,
                TransactionRow.is_transfer.is_(False),
                TransactionRow.date >= start,
                TransactionRow.date <= end,
            )
            .order_by(TransactionRow.date, TransactionRow.id)
            .all()
        )
        return [transaction_from_row(r) for r in rows]

    def center_ids_between(self, start: date, end: date) -> List[int]:
        """Centers with at least one movement in the range"""
        rows = (
            self._live()
            .with_entities(TransactionRow.center_id)
            .filter(
                TransactionRow.center_id.isnot(None),
                TransactionRow.date >= start,
                TransactionRow.date <= end,
            )
            .distinct()
            .all()
        )
        return [center_id for (center_id,) in rows]

    def balance_movement_until(self, as_of: date) -> int:
        """Sum of every non-deleted movement up to and including as_of"""
        total = (
            self.db.query(func.coalesce(func.sum(TransactionRow.amount_cents), 0))
            .filter(TransactionRow.deleted_at.is_(None), TransactionRow.date <= as_of)
            .scalar()
        )
        return int(total)

    def soft_delete(self, row: TransactionRow) -> None:
        row.deleted_at = _now()
        self.db.flush()


class SplitRepository:
    """Repository for income splits"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_transaction(self, transaction_id: int) -> Optional[IncomeSplitRow]:
        return self.db.query(IncomeSplitRow).filter(IncomeSplitRow.transaction_id == transaction_id).first()

    def list_splits(self) -> List[IncomeSplitRow]:
        return self.db.query(IncomeSplitRow).order_by(IncomeSplitRow.id).all()

    def create(self, transaction_id: int, split: IncomeSplit, transfer_transaction_id: int) -> IncomeSplitRow:
        row = IncomeSplitRow(
            transaction_id=transaction_id,
            transfer_transaction_id=transfer_transaction_id,
            gross_cents=split.gross_cents,
            net_cents=split.net_cents,
            share_a_cents=split.share_a_cents,
            share_b_cents=split.share_b_cents,
            share_c_cents=split.share_c_cents,
            tax_cents=split.tax_cents,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def delete(self, row: IncomeSplitRow) -> None:
        self.db.delete(row)
        self.db.flush()


class SettingsRepository:
    """Key/value settings store"""

    def __init__(self, db: Session):
        self.db = db

    def get_int(self, key: str, default: int) -> int:
        row = self.db.query(SettingRow).filter(SettingRow.key == key).first()
        if row is None or row.value == "":
            return default
        return int(row.value)

    def set_value(self, key: str, value: object, description: Optional[str] = None) -> None:
        row = self.db.query(SettingRow).filter(SettingRow.key == key).first()
        if row is None:
            row = SettingRow(key=key, value=str(value), description=description)
            self.db.add(row)
        else:
            row.value = str(value)
        self.db.flush()
