"""User edits on the forecast ledger"""

import logging
from datetime import date
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from cashflow_planner.domain.exceptions import ConsistencyError, NotFoundError, ValidationError
from cashflow_planner.domain.models import ForecastEntry
from cashflow_planner.infrastructure.database.repositories import ForecastRepository
from cashflow_planner.infrastructure.observability.metrics import forecast_entries_deleted_counter

logger = logging.getLogger(__name__)

# Source linkage is owned by the synchronizer and never editable
COSMETIC_FIELDS = {"date", "amount_cents", "description", "notes", "priority", "reliability"}


class ForecastEntryService:
    def __init__(self, db: Session):
        self.forecast = ForecastRepository(db)

    def list_year(self, year: int) -> List[ForecastEntry]:
        return self.forecast.list_between(date(year, 1, 1), date(year, 12, 31))

    def add_manual(self, entry: ForecastEntry) -> ForecastEntry:
        if entry.amount_cents is None or entry.amount_cents <= 0:
            raise ValidationError("Amount must be a positive number of cents")
        if not entry.description or not entry.description.strip():
            raise ValidationError("Description is required")
        entry.source_type = None
        entry.source_id = None

        stored = self.forecast.add(entry)
        logger.info("Manual forecast entry added", extra={"entry_id": stored.id})
        return stored

    def patch(self, entry_id: int, changes: Dict[str, Any]) -> ForecastEntry:
        forbidden = set(changes) - COSMETIC_FIELDS
        if forbidden:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(forbidden))}")
        if "amount_cents" in changes and (changes["amount_cents"] is None or changes["amount_cents"] <= 0):
            raise ValidationError("Amount must be a positive number of cents")

        current = self.forecast.get(entry_id)
        if current is None:
            raise NotFoundError(f"Forecast entry {entry_id} not found")
        moved_to = changes.get("date")
        if (
            current.source_id is not None
            and moved_to is not None
            and moved_to != current.date
            and self.forecast.exists_for_source(current.source_type, current.source_id, moved_to)
        ):
            raise ConsistencyError(f"Contract {current.source_id} already has an entry on {moved_to}")

        entry = self.forecast.patch(entry_id, changes)
        if entry is None:
            raise NotFoundError(f"Forecast entry {entry_id} not found")
        return entry

    def delete(self, entry_id: int) -> None:
        if not self.forecast.soft_delete(entry_id):
            raise NotFoundError(f"Forecast entry {entry_id} not found")
        forecast_entries_deleted_counter.labels(reason="manual").inc()
