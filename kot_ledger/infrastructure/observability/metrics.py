"""Prometheus metrics for settlements, validation failures and ledger drift"""

from prometheus_client import Counter, Histogram, Gauge

# Settlement metrics
settlement_counter = Counter(
    "kot_settlement_total",
    "Settlement log entries written",
    ["kind"],  # Cash | UPI | Credit | AdvanceUse | AdvanceAddCash | AdvanceAddUPI
)

settlement_amount_counter = Counter(
    "kot_settlement_amount_minor_total",
    "Settled amount in minor currency units",
    ["kind"],
)

validation_failure_counter = Counter(
    "kot_validation_failures_total",
    "Rejected payment operations",
    ["error"],
)

# Reconciliation metrics
balance_mismatch_gauge = Gauge(
    "kot_balance_mismatches",
    "Cached balances disagreeing with the settlement log at the last audit",
)

migrated_records_counter = Counter(
    "kot_migrated_records_total",
    "Settlement rows relabelled by legacy mode migration",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_settlement(kind: str, amount: int) -> None:
    settlement_counter.labels(kind=kind).inc()
    settlement_amount_counter.labels(kind=kind).inc(amount)


def record_validation_failure(error: str) -> None:
    validation_failure_counter.labels(error=error).inc()
