"""Subscription registry: CRUD with usage counters kept in lockstep.

Every mutation that changes how many live subscriptions (or alert-enabled
subscriptions) a user owns runs the row change and the counter change inside
one ``atomic`` block. Row changes are conditional single statements, so of two
racing requests only the one that actually changes the row adjusts a counter.
"""

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.billing.models import BillingInterval, Subscription
from tracksubs.billing.payment_methods import PaymentMethodService
from tracksubs.billing.schemas import SubscriptionCreate, SubscriptionUpdate
from tracksubs.billing.usage import CounterName, UsageCounterStore
from tracksubs.core.database import atomic
from tracksubs.core.exceptions import (
    ImmutableFieldError,
    InvalidInputError,
    SubscriptionNotFoundError,
)
from tracksubs.core.logging import LoggerMixin
from tracksubs.core.metrics import track_subscription_mutation
from tracksubs.models.base import utcnow
from tracksubs.schemas.base import parse_payload

ALL_INTERVALS = "ALL"

# Owned by other operations; never writable through ``update``.
PROTECTED_FIELDS = frozenset(
    {"id", "user_id", "next_billing_date", "email_alert", "deleted_at", "created_at", "updated_at"},
)
NON_NULLABLE_FIELDS = frozenset({"title", "amount", "currency", "interval", "is_active"})


class SubscriptionRegistry(LoggerMixin):
    """Owner-scoped subscription CRUD."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize subscription registry.

        Args:
            db: Database session
        """
        self.db = db
        self.usage = UsageCounterStore(db)
        self.payment_methods = PaymentMethodService(db)

    async def list_subscriptions(
        self,
        user_id: UUID,
        interval: BillingInterval | str | None = ALL_INTERVALS,
    ) -> list[Subscription]:
        """List the user's live subscriptions.

        Args:
            user_id: Owner
            interval: One interval value, or ``ALL`` / None for every interval

        Returns:
            Subscriptions ordered active-first, then by next billing date
        """
        if interval is None or interval == ALL_INTERVALS:
            intervals = list(BillingInterval)
        else:
            try:
                intervals = [BillingInterval(interval)]
            except ValueError as exc:
                raise InvalidInputError(
                    "Unknown billing interval",
                    field="interval",
                    value=interval,
                ) from exc

        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.deleted_at.is_(None),
                Subscription.interval.in_(intervals),
            )
            .order_by(
                Subscription.is_active.desc(),
                Subscription.next_billing_date.asc(),
            ),
        )
        return list(result.scalars().all())

    async def get(self, user_id: UUID, subscription_id: UUID) -> Subscription:
        """Get one live subscription owned by the user.

        Raises:
            SubscriptionNotFoundError: If missing, deleted, or owned by another user
        """
        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.id == subscription_id,
                Subscription.user_id == user_id,
                Subscription.deleted_at.is_(None),
            )
            .execution_options(populate_existing=True),
        )
        subscription = result.scalar_one_or_none()
        if subscription is None:
            raise SubscriptionNotFoundError(resource_id=str(subscription_id))
        return subscription

    async def create(
        self,
        user_id: UUID,
        fields: SubscriptionCreate | Mapping[str, Any],
    ) -> Subscription:
        """Create a subscription and count it in the user's usage.

        Raises:
            InvalidInputError: If interval, amount or another field is invalid
            PaymentMethodNotFoundError: If the payment method is not the user's
        """
        data = parse_payload(SubscriptionCreate, fields)

        async with atomic(self.db):
            if data.payment_method_id is not None:
                await self.payment_methods.get_owned(user_id, data.payment_method_id)

            subscription = Subscription(user_id=user_id, **data.model_dump())
            self.db.add(subscription)
            await self.db.flush()

            await self.usage.increment(user_id, CounterName.SUBSCRIPTIONS)
            if subscription.email_alert:
                await self.usage.increment(user_id, CounterName.ALERTS)

        track_subscription_mutation("create")
        self.logger.info(
            "subscription_created",
            user_id=str(user_id),
            subscription_id=str(subscription.id),
            interval=subscription.interval.value,
            email_alert=subscription.email_alert,
        )
        return subscription

    async def update(
        self,
        user_id: UUID,
        subscription_id: UUID,
        fields: SubscriptionUpdate | Mapping[str, Any],
    ) -> Subscription:
        """Apply a partial update to an owned subscription.

        Raises:
            ImmutableFieldError: If the payload touches a protected field
            InvalidInputError: If a value is invalid
            SubscriptionNotFoundError: If not owned by the user
        """
        if isinstance(fields, Mapping):
            protected = sorted(PROTECTED_FIELDS.intersection(fields))
            if protected:
                raise ImmutableFieldError(
                    f"Cannot update {', '.join(protected)} through subscription update",
                    field=protected[0],
                )
        changes = parse_payload(SubscriptionUpdate, fields).model_dump(exclude_unset=True)

        cleared = sorted(k for k, v in changes.items() if v is None and k in NON_NULLABLE_FIELDS)
        if cleared:
            raise InvalidInputError(f"{cleared[0]} cannot be null", field=cleared[0])

        if not changes:
            return await self.get(user_id, subscription_id)

        async with atomic(self.db):
            if changes.get("payment_method_id") is not None:
                await self.payment_methods.get_owned(user_id, changes["payment_method_id"])

            result = await self.db.execute(
                update(Subscription)
                .where(
                    Subscription.id == subscription_id,
                    Subscription.user_id == user_id,
                    Subscription.deleted_at.is_(None),
                )
                .values(**changes)
                .returning(Subscription.id)
                .execution_options(synchronize_session=False),
            )
            if result.scalar_one_or_none() is None:
                raise SubscriptionNotFoundError(resource_id=str(subscription_id))

        track_subscription_mutation("update")
        self.logger.info(
            "subscription_updated",
            user_id=str(user_id),
            subscription_id=str(subscription_id),
            fields=sorted(changes),
        )
        return await self.get(user_id, subscription_id)

    async def delete(self, user_id: UUID, subscription_id: UUID) -> UUID:
        """Soft delete an owned subscription and uncount it.

        The alert counter is decremented as well when the subscription had
        alerting enabled.

        Raises:
            SubscriptionNotFoundError: If not owned by the user or already deleted
        """
        async with atomic(self.db):
            result = await self.db.execute(
                update(Subscription)
                .where(
                    Subscription.id == subscription_id,
                    Subscription.user_id == user_id,
                    Subscription.deleted_at.is_(None),
                )
                .values(deleted_at=utcnow())
                .returning(Subscription.email_alert)
                .execution_options(synchronize_session=False),
            )
            row = result.one_or_none()
            if row is None:
                raise SubscriptionNotFoundError(resource_id=str(subscription_id))

            had_alert = bool(row.email_alert)
            await self.usage.decrement(user_id, CounterName.SUBSCRIPTIONS)
            if had_alert:
                await self.usage.decrement(user_id, CounterName.ALERTS)

        track_subscription_mutation("delete")
        self.logger.info(
            "subscription_deleted",
            user_id=str(user_id),
            subscription_id=str(subscription_id),
            had_alert=had_alert,
        )
        return subscription_id

    async def set_alert(
        self,
        user_id: UUID,
        subscription_id: UUID,
        enabled: bool,
    ) -> Subscription:
        """Enable or disable email alerts for an owned subscription.

        The alert counter moves only when the flag actually flips, so repeating
        a request is a no-op.

        Raises:
            SubscriptionNotFoundError: If not owned by the user
        """
        async with atomic(self.db):
            result = await self.db.execute(
                update(Subscription)
                .where(
                    Subscription.id == subscription_id,
                    Subscription.user_id == user_id,
                    Subscription.deleted_at.is_(None),
                    Subscription.email_alert != enabled,
                )
                .values(email_alert=enabled)
                .returning(Subscription.id)
                .execution_options(synchronize_session=False),
            )
            changed = result.scalar_one_or_none() is not None

            if changed and enabled:
                await self.usage.increment(user_id, CounterName.ALERTS)
            elif changed:
                await self.usage.decrement(user_id, CounterName.ALERTS)

            subscription = await self.get(user_id, subscription_id)

        if changed:
            track_subscription_mutation("alert")
        self.logger.info(
            "subscription_alert_changed",
            user_id=str(user_id),
            subscription_id=str(subscription_id),
            enabled=enabled,
            changed=changed,
        )
        return subscription
