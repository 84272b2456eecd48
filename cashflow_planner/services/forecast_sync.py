"""Keeps the forecast ledger in line with recurring contracts.

Generated entries are keyed by (source_type, source_id, date): an occurrence
is only inserted when no live entry exists for that key, which makes every
generation step idempotent. Entries dated before `today` are history and are
never touched by field updates or regeneration.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from cashflow_planner.config import settings
from cashflow_planner.domain.models import ForecastEntry, LifecycleState, RecurringContract
from cashflow_planner.domain.occurrences import occurrence_dates
from cashflow_planner.infrastructure.database.repositories import ForecastRepository
from cashflow_planner.infrastructure.observability.logging import log_sync_outcome
from cashflow_planner.infrastructure.observability.metrics import (
    forecast_entries_created_counter,
    forecast_entries_deleted_counter,
)

# Changing any of these moves occurrences, so future entries are rebuilt
SCHEDULE_FIELDS = ("frequency", "expected_day", "start_date", "end_date", "is_active")


@dataclass
class SyncResult:
    created: int = 0
    deleted: int = 0
    patched: int = 0


def schedule_changed(previous: RecurringContract, current: RecurringContract) -> bool:
    return any(getattr(previous, name) != getattr(current, name) for name in SCHEDULE_FIELDS)


class ForecastSynchronizer:
    """Applies contract lifecycle events to the forecast ledger"""

    def __init__(self, forecast_repo: ForecastRepository, horizon_years: Optional[int] = None):
        self.forecast = forecast_repo
        self.horizon_years = settings.forecast_horizon_years if horizon_years is None else horizon_years

    def horizon_end(self, today: date) -> date:
        return date(today.year + self.horizon_years, 12, 31)

    def _entry_for(self, contract: RecurringContract, on: date) -> ForecastEntry:
        return ForecastEntry(
            date=on,
            type=contract.kind,
            amount_cents=contract.amount_cents,
            description=contract.label,
            source_type=contract.source_type,
            source_id=contract.id,
            center_id=contract.center_id,
            priority=contract.priority,
            reliability=contract.reliability,
            notes=contract.notes,
        )

    def generate(self, contract: RecurringContract, range_start: date, today: date) -> int:
        """Insert missing occurrences from range_start through the horizon"""
        if not contract.is_active or contract.state == LifecycleState.DELETED:
            return 0

        created = 0
        for on in occurrence_dates(contract, range_start, self.horizon_end(today)):
            if self.forecast.exists_for_source(contract.source_type, contract.id, on):
                continue
            self.forecast.add(self._entry_for(contract, on))
            created += 1

        forecast_entries_created_counter.labels(source_type=contract.source_type.value).inc(created)
        return created

    def sync_created(self, contract: RecurringContract, today: date) -> SyncResult:
        """New contract: every occurrence from its start through the horizon"""
        result = SyncResult(created=self.generate(contract, contract.start_date, today))
        log_sync_outcome(contract.id, "create", created=result.created)
        return result

    def regenerate(self, contract: RecurringContract, today: date) -> SyncResult:
        """Drop future generated entries and rebuild them from the current schedule"""
        deleted = self.forecast.soft_delete_source_entries(contract.source_type, contract.id, from_date=today)
        forecast_entries_deleted_counter.labels(reason="regenerate").inc(deleted)
        created = self.generate(contract, today, today)

        log_sync_outcome(contract.id, "regenerate", created=created, deleted=deleted)
        return SyncResult(created=created, deleted=deleted)

    def patch_future(self, contract: RecurringContract, today: date) -> SyncResult:
        """Carry amount/label/tags onto future generated entries, dates unchanged"""
        patched = self.forecast.patch_source_entries(
            contract.source_type,
            contract.id,
            from_date=today,
            fields={
                "amount_cents": contract.amount_cents,
                "description": contract.label,
                "center_id": contract.center_id,
                "priority": contract.priority,
                "reliability": contract.reliability,
                "notes": contract.notes,
            },
        )
        log_sync_outcome(contract.id, "update", patched=patched)
        return SyncResult(patched=patched)

    def sync_updated(self, previous: RecurringContract, current: RecurringContract, today: date) -> SyncResult:
        if schedule_changed(previous, current):
            return self.regenerate(current, today)
        return self.patch_future(current, today)

    def remove(self, contract: RecurringContract, from_date: Optional[date], reason: str) -> SyncResult:
        """Soft-delete generated entries dated on/after from_date (all when None)"""
        deleted = self.forecast.soft_delete_source_entries(contract.source_type, contract.id, from_date=from_date)
        forecast_entries_deleted_counter.labels(reason=reason).inc(deleted)

        log_sync_outcome(contract.id, reason, deleted=deleted)
        return SyncResult(deleted=deleted)
