"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cashflow_planner.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cashflow_planner.api.v1 import centers, contracts, forecast, liquidity, plans, sales, transactions
from cashflow_planner.domain.exceptions import (
    ConsistencyError,
    DomainException,
    NotFoundError,
    TransactionFeedError,
    ValidationError,
)
from cashflow_planner.infrastructure.database.session import init_db
from cashflow_planner.infrastructure.observability.logging import setup_logging
from cashflow_planner.config import settings

# Setup structured logging
setup_logging(settings.log_level)

STATUS_BY_EXCEPTION = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConsistencyError, 409),
    (TransactionFeedError, 503),
)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = next((code for cls, code in STATUS_BY_EXCEPTION if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logging.error(f"Unhandled domain error: {exc}", extra={"path": request.url.path})
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cashflow Planner",
        description="Recurring contracts, forecast ledger, payment plans and liquidity projection",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])
    app.include_router(forecast.router, prefix="/v1", tags=["forecast"])
    app.include_router(plans.router, prefix="/v1", tags=["plans"])
    app.include_router(sales.router, prefix="/v1", tags=["sales"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(liquidity.router, prefix="/v1", tags=["liquidity"])
    app.include_router(centers.router, prefix="/v1", tags=["centers"])

    return app


app = create_app()
