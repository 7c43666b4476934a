"""Subscription registry, usage counters and billing ledger."""

from tracksubs.billing.intervals import advance_billing_date, interval_period
from tracksubs.billing.ledger import BillingLedger
from tracksubs.billing.models import BillingInterval, Subscription, Transaction
from tracksubs.billing.payment_methods import PaymentMethodService
from tracksubs.billing.projections import ProjectionService, render_csv
from tracksubs.billing.registry import SubscriptionRegistry
from tracksubs.billing.usage import CounterName, UsageCounterStore, UsageSnapshot

__all__ = [
    "BillingInterval",
    "BillingLedger",
    "CounterName",
    "PaymentMethodService",
    "ProjectionService",
    "Subscription",
    "SubscriptionRegistry",
    "Transaction",
    "UsageCounterStore",
    "UsageSnapshot",
    "advance_billing_date",
    "interval_period",
    "render_csv",
]
