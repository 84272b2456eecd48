"""Dependency injection for FastAPI endpoints"""

from datetime import date

from fastapi import Request
from cashflow_planner.infrastructure.clients.transaction_feed import TransactionFeedClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Wall-clock date; the only place the service reads it"""
    return date.today()


def get_feed_client() -> TransactionFeedClient:
    """Provide transaction feed client instance"""
    return TransactionFeedClient()
