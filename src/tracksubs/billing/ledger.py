"""Billing ledger: records payments and advances subscription schedules."""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.billing.intervals import advance_billing_date
from tracksubs.billing.models import Subscription, Transaction
from tracksubs.billing.payment_methods import PaymentMethodService
from tracksubs.core.database import atomic
from tracksubs.core.exceptions import SubscriptionNotFoundError
from tracksubs.core.logging import LoggerMixin
from tracksubs.core.metrics import track_payment_recorded


class BillingLedger(LoggerMixin):
    """Append-only payment ledger paired with schedule advancement."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize billing ledger.

        Args:
            db: Database session
        """
        self.db = db
        self.payment_methods = PaymentMethodService(db)

    async def record_payment(
        self,
        user_id: UUID,
        subscription_id: UUID,
        paid_on: date,
        payment_method_id: UUID | None = None,
    ) -> Transaction:
        """Record that the subscription's current charge was paid.

        Inserts a Transaction invoiced at the subscription's current
        ``next_billing_date`` and moves that date forward by one interval
        period. The period is computed from the stored date, never from
        ``paid_on``, so late payments do not shift the schedule. Both writes
        commit together or not at all.

        Args:
            user_id: Owner of the subscription
            subscription_id: Subscription being paid
            paid_on: Date the payment was made
            payment_method_id: Optional override of the subscription's method

        Returns:
            The recorded transaction

        Raises:
            SubscriptionNotFoundError: If the subscription is not the user's
            PaymentMethodNotFoundError: If the override is not the user's
        """
        async with atomic(self.db):
            result = await self.db.execute(
                select(Subscription)
                .where(
                    Subscription.id == subscription_id,
                    Subscription.user_id == user_id,
                    Subscription.deleted_at.is_(None),
                )
                .with_for_update()
                .execution_options(populate_existing=True),
            )
            subscription = result.scalar_one_or_none()
            if subscription is None:
                raise SubscriptionNotFoundError(resource_id=str(subscription_id))

            if payment_method_id is not None:
                await self.payment_methods.get_owned(user_id, payment_method_id)
            else:
                payment_method_id = subscription.payment_method_id

            transaction = Transaction(
                user_id=user_id,
                subscription_id=subscription.id,
                payment_method_id=payment_method_id,
                amount=subscription.amount,
                currency=subscription.currency,
                invoice_date=subscription.next_billing_date,
                paid_date=paid_on,
            )
            self.db.add(transaction)
            await self.db.flush()

            await self._advance_schedule(subscription)

        track_payment_recorded(subscription.interval.value)
        self.logger.info(
            "payment_recorded",
            user_id=str(user_id),
            subscription_id=str(subscription_id),
            transaction_id=str(transaction.id),
            invoice_date=transaction.invoice_date.isoformat(),
            paid_date=paid_on.isoformat(),
            next_billing_date=subscription.next_billing_date.isoformat(),
        )
        return transaction

    async def _advance_schedule(self, subscription: Subscription) -> None:
        subscription.next_billing_date = advance_billing_date(
            subscription.next_billing_date,
            subscription.interval,
        )
        await self.db.flush()
