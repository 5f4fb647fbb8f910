"""Prometheus metrics for monitoring quotes, plan originations, payment outcomes and processor health"""

from prometheus_client import Counter, Histogram

# Plan metrics
quote_counter = Counter(
    "installment_quotes_total",
    "Payment plan quotes calculated",
)

plan_creation_counter = Counter(
    "installment_plans_created_total",
    "Payment plan creation attempts",
    ["outcome", "kind"],  # funded | first_payment_failed ; full | installment
)

plan_status_counter = Counter(
    "installment_plan_status_transitions_total",
    "Plan status changes after payment activity",
    ["status"],  # completed | defaulted | cancelled
)

# Payment metrics
payment_outcome_counter = Counter(
    "installment_payment_outcomes_total",
    "Scheduled payment outcomes recorded",
    ["status"],  # completed | failed
)

payment_retry_counter = Counter(
    "installment_payment_retries_total",
    "Failed payments moved back to pending",
)

# Processor metrics
processor_latency_histogram = Histogram(
    "processor_latency_seconds",
    "Payment processor response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

processor_failures_counter = Counter(
    "processor_failures_total",
    "Failed payment processor calls (timeouts, HTTP errors, malformed responses)",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_plan_creation(funded: bool, kind: str) -> None:
    """Record plan origination outcome for monitoring first-payment acceptance"""
    outcome = "funded" if funded else "first_payment_failed"
    plan_creation_counter.labels(outcome=outcome, kind=kind).inc()


def record_payment_outcome(status: str, plan_status: str, previous_plan_status: str) -> None:
    """Record a payment outcome and any plan status change it caused"""
    payment_outcome_counter.labels(status=status).inc()
    if plan_status != previous_plan_status:
        plan_status_counter.labels(status=plan_status).inc()
