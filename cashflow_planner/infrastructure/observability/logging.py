"""Structured JSON logging for the planner service"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from cashflow_planner.config import settings

SYNC_LOGGER = "cashflow_planner.sync"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "uvicorn.access")


class PlannerJsonFormatter(jsonlogger.JsonFormatter):
    """Adds UTC timestamp, level and service name to every record"""

    def __init__(self, *args, service: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service


def setup_logging(level: str = "INFO", service: str = settings.service_name) -> None:
    """Send JSON records to stdout from the root logger"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(PlannerJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s", service=service))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_sync_outcome(
    contract_id: int,
    step: str,
    created: int = 0,
    deleted: int = 0,
    patched: int = 0,
) -> None:
    """One record per synchronization step that touched the forecast ledger"""
    logging.getLogger(SYNC_LOGGER).info(
        "Forecast synchronized",
        extra={
            "contract_id": contract_id,
            "step": step,
            "entries_created": created,
            "entries_deleted": deleted,
            "entries_patched": patched,
        },
    )


def log_sync_failure(contract_id: int, step: str, error: Exception) -> None:
    logging.getLogger(SYNC_LOGGER).warning(
        f"Forecast sync failed: {error}",
        extra={"contract_id": contract_id, "step": step, "error": type(error).__name__},
    )
