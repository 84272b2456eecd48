"""Prometheus metrics for forecast synchronization, payment plans and splits"""

from prometheus_client import Counter, Histogram

# Forecast ledger metrics
forecast_entries_created_counter = Counter(
    "cashflow_forecast_entries_created_total",
    "Forecast entries generated from contracts",
    ["source_type"],  # expected_income | expected_expense
)

forecast_entries_deleted_counter = Counter(
    "cashflow_forecast_entries_deleted_total",
    "Forecast entries soft-deleted by synchronization",
    ["reason"],  # regenerate | terminate | delete | promote | manual
)

sync_failure_counter = Counter(
    "cashflow_sync_failures_total",
    "Forecast synchronizations that failed and were reported as warnings",
    ["step"],
)

# Payment plan metrics
installment_payment_counter = Counter(
    "cashflow_installment_payments_total",
    "Installment payment state changes",
    ["action"],  # paid | reversed
)

plans_completed_counter = Counter(
    "cashflow_plans_completed_total",
    "Payment plans that became fully paid",
)

# Splits
splits_created_counter = Counter(
    "cashflow_income_splits_total",
    "Income splits created",
)

# Transaction feed
transaction_feed_failures_counter = Counter(
    "cashflow_transaction_feed_failures_total",
    "Failed transaction feed calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)
