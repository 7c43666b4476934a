"""Prometheus metrics for the TrackSubs service."""

from prometheus_client import Counter, Gauge, Histogram

# Request metrics
request_latency_seconds = Histogram(
    "tracksubs_request_latency_seconds",
    "Latency of HTTP requests in seconds",
    ["endpoint", "method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

request_total = Counter(
    "tracksubs_request_total",
    "Total number of HTTP requests",
    ["endpoint", "method", "status"],
)

active_requests = Gauge(
    "tracksubs_active_requests",
    "Number of active HTTP requests",
)

# Ledger and registry metrics
payments_recorded_total = Counter(
    "tracksubs_payments_recorded_total",
    "Payments recorded by the billing ledger",
    ["interval"],
)

subscription_mutations_total = Counter(
    "tracksubs_subscription_mutations_total",
    "Subscription registry mutations",
    ["operation"],
)

usage_counter_adjustments_total = Counter(
    "tracksubs_usage_counter_adjustments_total",
    "Atomic adjustments applied to usage counters",
    ["counter", "direction"],
)


def track_payment_recorded(interval: str) -> None:
    """Count a payment recorded against a subscription of ``interval``."""
    payments_recorded_total.labels(interval=interval).inc()


def track_subscription_mutation(operation: str) -> None:
    """Count a registry mutation (create, update, delete, alert)."""
    subscription_mutations_total.labels(operation=operation).inc()


def track_usage_adjustment(counter: str, delta: int) -> None:
    """Count a usage counter adjustment; negative deltas are decrements."""
    direction = "increment" if delta > 0 else "decrement"
    usage_counter_adjustments_total.labels(counter=counter, direction=direction).inc()
