"""HTTP client for the bank export service that produces actual transactions"""

import httpx
from datetime import date
from typing import List
from cashflow_planner.domain.models import Transaction
from cashflow_planner.domain.exceptions import TransactionFeedError
from cashflow_planner.config import settings


class TransactionFeedClient:
    """Read-only client for the external transaction feed"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.transaction_feed_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def get_transactions(self, start: date, end: date) -> List[Transaction]:
        """
        Fetch booked transactions dated between start and end, inclusive.

        Raises:
            TransactionFeedError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/transactions",
                    params={"from": start.isoformat(), "to": end.isoformat()},
                )
                response.raise_for_status()
                data = response.json()

                return [
                    Transaction(
                        date=date.fromisoformat(txn["date"]),
                        amount_cents=int(txn["amount_cents"]),
                        description=txn.get("description") or "",
                        external_id=str(txn["id"]),
                        is_transfer=bool(txn.get("is_transfer", False)),
                    )
                    for txn in data.get("transactions", [])
                ]

            except httpx.TimeoutException as e:
                raise TransactionFeedError(f"Transaction feed timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise TransactionFeedError(f"Transaction feed error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise TransactionFeedError(f"Transaction feed unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise TransactionFeedError(f"Invalid transaction data from feed: {e}") from e
