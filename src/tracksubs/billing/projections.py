"""Read-only projections over subscriptions and the ledger.

Amounts are stored in minor currency units and only converted to major units
(divided by 100) here, at the display boundary.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any
from uuid import UUID

import polars as pl
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.billing.models import Subscription, Transaction
from tracksubs.billing.registry import ALL_INTERVALS, SubscriptionRegistry
from tracksubs.billing.schemas import TransactionRow
from tracksubs.core.exceptions import InvalidInputError, PlanRestrictionError, UserNotFoundError
from tracksubs.core.logging import LoggerMixin
from tracksubs.models.payment_method import PaymentMethod
from tracksubs.models.user import User, UserPlan

MINOR_UNITS = 100
DATE_FORMAT = "%Y-%m-%d"

EXPORTABLE_FIELDS = (
    "title",
    "website",
    "amount",
    "currency",
    "interval",
    "is_active",
    "next_billing_date",
)

def to_major_units(amount: int) -> float:
    """Convert an amount in minor currency units for display."""
    return amount / MINOR_UNITS

class ProjectionService(LoggerMixin):
    """Display rows for transaction history and subscription export."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.registry = SubscriptionRegistry(db)

    async def list_transactions(self, user_id: UUID) -> list[TransactionRow]:
        """List the user's transactions, newest paid first.

        Each row carries the subscription title/service and the payment method
        title. Deleted subscriptions still label their historical rows.
        """
        result = await self.db.execute(
            select(
                Transaction,
                Subscription.title,
                Subscription.service,
                PaymentMethod.title.label("payment_method_title"),
            )
            .join(Subscription, Subscription.id == Transaction.subscription_id)
            .outerjoin(PaymentMethod, PaymentMethod.id == Transaction.payment_method_id)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.paid_date.desc(), Transaction.created_at.desc()),
        )

        return [
            TransactionRow(
                id=row.Transaction.id,
                amount=to_major_units(row.Transaction.amount),
                currency=row.Transaction.currency,
                invoice_date=row.Transaction.invoice_date,
                paid_date=row.Transaction.paid_date,
                payment_method_id=row.Transaction.payment_method_id,
                subscription_id=row.Transaction.subscription_id,
                title=row.title,
                service=row.service,
                payment_method=row.payment_method_title,
            )
            for row in result.all()
        ]

    async def export_subscriptions(
        self,
        user_id: UUID,
        columns: Mapping[str, str],
    ) -> list[dict[str, Any]]:
        """Project live subscriptions onto caller-named columns.

        Args:
            user_id: Owner
            columns: Mapping of subscription field -> output header

        Returns:
            One dict per subscription keyed by the requested headers, in
            mapping order

        Raises:
            PlanRestrictionError: If the user is on the FREE plan
            InvalidInputError: If a field is not exportable or headers repeat
        """
        plan = await self.db.scalar(select(User.plan).where(User.id == user_id))
        if plan is None:
            raise UserNotFoundError(resource_id=str(user_id))
        if plan == UserPlan.FREE:
            raise PlanRestrictionError(details={"plan": plan.value})

        unknown = [field for field in columns if field not in EXPORTABLE_FIELDS]
        if unknown:
            raise InvalidInputError(
                f"Cannot export field {unknown[0]}",
                field="columns",
                value=unknown[0],
                constraint=f"one of {', '.join(EXPORTABLE_FIELDS)}",
            )
        if len(set(columns.values())) != len(columns):
            raise InvalidInputError("Export headers must be unique", field="columns")

        subscriptions = await self.registry.list_subscriptions(user_id, ALL_INTERVALS)
        rows = [
            {header: _export_value(subscription, field) for field, header in columns.items()}
            for subscription in subscriptions
        ]

        self.logger.info(
            "subscriptions_exported",
            user_id=str(user_id),
            rows=len(rows),
            fields=list(columns),
        )
        return rows

def _export_value(subscription: Subscription, field: str) -> Any:
    value = getattr(subscription, field)
    if field == "amount":
        return to_major_units(value)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if field == "interval":
        return value.value
    return value

def render_csv(rows: list[dict[str, Any]], headers: list[str]) -> str:
    """Render export rows as CSV text with ``headers`` as the header line."""
    frame = pl.DataFrame({header: [row.get(header) for row in rows] for header in headers})
    return frame.write_csv()
