"""Integration tests for contract lifecycle and forecast synchronization"""

import pytest
from dataclasses import replace
from datetime import date
from unittest.mock import patch
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from cashflow_planner.domain.exceptions import ConsistencyError, ContractDeletedError, NotFoundError, ValidationError
from cashflow_planner.domain.models import EntryType, ForecastEntry, Frequency, LifecycleState, RecurringContract
from cashflow_planner.infrastructure.database.repositories import ContractRepository, ForecastRepository
from cashflow_planner.services.contracts import ContractService
from cashflow_planner.services.forecast_entries import ForecastEntryService
from cashflow_planner.services.forecast_sync import ForecastSynchronizer


def live_dates(db: Session, contract: RecurringContract) -> list[date]:
    return [e.date for e in ForecastRepository(db).list_by_source(contract.source_type, contract.id)]


def test_create_generates_through_horizon(db: Session, monthly_income, today):
    result = ContractService(db).create(monthly_income, today)
    db.commit()

    dates = live_dates(db, result.contract)
    assert result.warnings == []
    assert result.forecast.created == 24  # Jan 2026 .. Dec 2027
    assert dates[0] == date(2026, 1, 20)
    assert dates[-1] == date(2027, 12, 20)
    assert len(set(dates)) == len(dates)


def test_create_quarterly_expense(db: Session, quarterly_expense, today):
    result = ContractService(db).create(quarterly_expense, today)

    assert live_dates(db, result.contract)[:4] == [
        date(2026, 2, 1),
        date(2026, 5, 1),
        date(2026, 8, 1),
        date(2026, 11, 1),
    ]


def test_field_update_patches_future_only(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    result = service.update(contract.id, {"amount_cents": 12_000, "label": "Acme retainer v2"}, today)
    db.commit()

    entries = ForecastRepository(db).list_by_source(contract.source_type, contract.id)
    past = [e for e in entries if e.date < today]
    future = [e for e in entries if e.date >= today]
    assert result.forecast.patched == 19
    assert result.forecast.created == 0
    assert {e.amount_cents for e in past} == {10_000}
    assert {e.amount_cents for e in future} == {12_000}
    assert {e.description for e in future} == {"Acme retainer v2"}


def test_schedule_update_regenerates_future(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    result = service.update(contract.id, {"expected_day": 5}, today)
    db.commit()

    dates = live_dates(db, contract)
    assert result.forecast.deleted == 19
    assert result.forecast.created == 18  # 5 Jul 2026 .. 5 Dec 2027
    assert [d for d in dates if d < today] == [date(2026, m, 20) for m in range(1, 6)]
    assert [d for d in dates if d >= today][0] == date(2026, 7, 5)


def test_moving_start_mid_month_skips_that_month(db: Session, quarterly_expense, today):
    service = ContractService(db)
    contract = service.create(replace(quarterly_expense, frequency=Frequency.MONTHLY), today).contract

    service.update(contract.id, {"start_date": date(2026, 9, 15)}, today)

    future = [d for d in live_dates(db, contract) if d >= today]
    assert future[0] == date(2026, 10, 1)


def test_create_with_mid_month_end(db: Session, monthly_income, today):
    contract = ContractService(db).create(replace(monthly_income, end_date=date(2026, 3, 10)), today).contract

    assert live_dates(db, contract) == [date(2026, 1, 20), date(2026, 2, 20)]


def test_regeneration_is_idempotent(db: Session, quarterly_expense, today):
    contract = ContractService(db).create(quarterly_expense, today).contract
    synchronizer = ForecastSynchronizer(ForecastRepository(db))

    synchronizer.regenerate(contract, today)
    first = live_dates(db, contract)
    synchronizer.regenerate(contract, today)
    second = live_dates(db, contract)

    assert first == second
    assert len(set(second)) == len(second)


def test_generate_skips_existing_occurrences(db: Session, monthly_income, today):
    contract = ContractService(db).create(monthly_income, today).contract
    synchronizer = ForecastSynchronizer(ForecastRepository(db))

    assert synchronizer.generate(contract, contract.start_date, today) == 0


def test_deactivation_removes_future_and_reactivation_restores(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    service.update(contract.id, {"is_active": False}, today)
    assert max(live_dates(db, contract)) < today

    service.update(contract.id, {"is_active": True}, today)
    assert max(live_dates(db, contract)) == date(2027, 12, 20)


def test_manual_entries_survive_regeneration(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract
    manual = ForecastRepository(db).add(
        ForecastEntry(date=date(2026, 7, 1), type=EntryType.INCOME, amount_cents=5_000, description="Bonus")
    )

    service.update(contract.id, {"frequency": "quarterly"}, today)

    assert ForecastRepository(db).get(manual.id) is not None


def test_terminate_sets_end_date_and_removes_from_termination(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    result = service.terminate(contract.id, date(2026, 9, 10), today)
    db.commit()

    stored = ContractRepository(db).get(contract.id)
    assert stored.end_date == date(2026, 8, 31)
    assert stored.state == LifecycleState.ACTIVE
    assert live_dates(db, contract) == [date(2026, m, 20) for m in range(1, 9)]
    assert result.forecast.deleted == 16


@pytest.mark.parametrize("termination_date", [date(2026, 3, 1), date(2026, 2, 10), date(2026, 3, 25)])
def test_terminate_before_start_deletes_everything(db: Session, today, termination_date):
    service = ContractService(db)
    contract = service.create(
        RecurringContract(
            kind=EntryType.EXPENSE,
            label="Office lease",
            amount_cents=80_000,
            frequency="monthly",
            start_date=date(2026, 3, 1),
        ),
        today,
    ).contract

    service.terminate(contract.id, termination_date, today)
    db.commit()

    assert ContractRepository(db).get(contract.id) is None
    assert ContractRepository(db).get(contract.id, include_deleted=True).state == LifecycleState.DELETED
    assert live_dates(db, contract) == []


def test_terminated_in_the_past_is_ended(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    result = service.terminate(contract.id, date(2026, 4, 1), today)
    assert result.contract.state == LifecycleState.ENDED
    assert result.contract.end_date == date(2026, 3, 31)


def test_delete_is_future_only_by_default(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    service.delete(contract.id, today)
    db.commit()

    assert live_dates(db, contract) == [date(2026, m, 20) for m in range(1, 6)]
    with pytest.raises(ContractDeletedError):
        service.get(contract.id)


def test_delete_from_date(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    service.delete(contract.id, today, from_date=date(2026, 1, 1))
    assert live_dates(db, contract) == []


def test_operations_on_deleted_contract_rejected(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract
    service.delete(contract.id, today)

    with pytest.raises(ContractDeletedError):
        service.terminate(contract.id, date(2026, 9, 1), today)
    with pytest.raises(NotFoundError):
        service.update(9999, {"amount_cents": 1}, today)


@pytest.mark.parametrize(
    "changes",
    [
        {"amount_cents": 0},
        {"label": " "},
        {"end_date": date(2025, 12, 31)},
        {"frequency": "weekly"},
        {"expected_day": 32},
        {"id": 4},
    ],
)
def test_invalid_update_rejected(db: Session, monthly_income, today, changes):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract

    with pytest.raises(ValidationError):
        service.update(contract.id, changes, today)


def test_invalid_contract_never_written(db: Session, today):
    contract = RecurringContract(
        kind=EntryType.INCOME,
        label="Broken",
        amount_cents=-5,
        frequency="monthly",
        start_date=date(2026, 1, 1),
    )
    with pytest.raises(ValidationError):
        ContractService(db).create(contract, today)
    assert ContractRepository(db).list_contracts() == []


def test_sync_failure_is_a_warning(db: Session, monthly_income, today):
    """Ledger errors leave the contract write in place and surface as a warning"""
    service = ContractService(db)
    with patch.object(
        ForecastSynchronizer,
        "sync_created",
        side_effect=OperationalError("INSERT", {}, Exception("ledger unavailable")),
    ):
        result = service.create(monthly_income, today)
    db.commit()

    assert len(result.warnings) == 1
    assert "create" in result.warnings[0]
    assert ContractRepository(db).get(result.contract.id) is not None
    assert live_dates(db, result.contract) == []


def test_partial_sync_failure_rolls_back_only_the_ledger(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract
    unpatched_add = ForecastRepository.add
    calls = []

    def flaky_add(self, entry):
        calls.append(entry.date)
        if len(calls) > 2:
            raise OperationalError("INSERT", {}, Exception("disk full"))
        return unpatched_add(self, entry)

    with patch.object(ForecastRepository, "add", flaky_add):
        result = service.update(contract.id, {"expected_day": 1}, today)
    db.commit()

    assert result.warnings
    stored = ContractRepository(db).get(contract.id)
    assert stored.expected_day == 1
    # Savepoint rollback restores the entries the failed regeneration deleted
    assert len(live_dates(db, contract)) == 24


def generated_entry(contract: RecurringContract, on: date) -> ForecastEntry:
    return ForecastEntry(
        date=on,
        type=contract.kind,
        amount_cents=contract.amount_cents,
        description=contract.label,
        source_type=contract.source_type,
        source_id=contract.id,
    )


def test_ledger_holds_one_live_entry_per_occurrence(db: Session, monthly_income, today):
    contract = ContractService(db).create(monthly_income, today).contract
    repo = ForecastRepository(db)

    with pytest.raises(IntegrityError), db.begin_nested():
        repo.add(generated_entry(contract, date(2026, 7, 20)))

    assert live_dates(db, contract).count(date(2026, 7, 20)) == 1


def test_deleted_entry_does_not_block_reinsert(db: Session, monthly_income, today):
    contract = ContractService(db).create(monthly_income, today).contract
    repo = ForecastRepository(db)
    repo.soft_delete_source_entries(contract.source_type, contract.id, from_date=date(2026, 7, 20))

    repo.add(generated_entry(contract, date(2026, 7, 20)))

    assert date(2026, 7, 20) in live_dates(db, contract)


def test_contract_writes_lock_the_contract_row(db: Session, monthly_income, today):
    service = ContractService(db)
    contract = service.create(monthly_income, today).contract
    unpatched_get = ContractRepository.get
    locked = []

    def recording_get(self, contract_id, include_deleted=False, for_update=False):
        locked.append(for_update)
        return unpatched_get(self, contract_id, include_deleted, for_update)

    with patch.object(ContractRepository, "get", recording_get):
        service.update(contract.id, {"amount_cents": 11_000}, today)
        service.terminate(contract.id, date(2026, 10, 1), today)
        service.delete(contract.id, today)

    assert locked == [True, True, True]


def test_moving_generated_entry_onto_another_occurrence_rejected(db: Session, monthly_income, today):
    contract = ContractService(db).create(monthly_income, today).contract
    july = next(e for e in ForecastRepository(db).list_by_source(contract.source_type, contract.id) if e.date.month == 7)
    service = ForecastEntryService(db)

    with pytest.raises(ConsistencyError):
        service.patch(july.id, {"date": date(2026, 8, 20)})
    assert service.patch(july.id, {"date": date(2026, 7, 25)}).date == date(2026, 7, 25)
