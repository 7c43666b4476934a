"""Tests for the billing ledger."""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.accounts.resolver import Identity
from tracksubs.billing.ledger import BillingLedger
from tracksubs.billing.models import BillingInterval, Subscription, Transaction
from tracksubs.billing.payment_methods import PaymentMethodService
from tracksubs.billing.registry import SubscriptionRegistry
from tracksubs.core.exceptions import PaymentMethodNotFoundError, SubscriptionNotFoundError


async def transaction_count(db: AsyncSession) -> int:
    return await db.scalar(select(func.count()).select_from(Transaction))


async def billing_date(db: AsyncSession, subscription_id) -> date:
    return await db.scalar(
        select(Subscription.next_billing_date).where(Subscription.id == subscription_id),
    )


@pytest.mark.asyncio
async def test_record_payment_example(
    db_session: AsyncSession, identity: Identity, make_subscription
) -> None:
    """MONTHLY 2024-01-01, 1000 USD, paid 2024-01-03 -> invoiced 01-01, next 02-01."""
    subscription = await make_subscription(
        identity,
        amount=1000,
        currency="USD",
        interval=BillingInterval.MONTHLY,
        next_billing_date=date(2024, 1, 1),
    )

    transaction = await BillingLedger(db_session).record_payment(
        identity.user_id, subscription.id, date(2024, 1, 3)
    )

    assert transaction.amount == 1000
    assert transaction.currency == "USD"
    assert transaction.invoice_date == date(2024, 1, 1)
    assert transaction.paid_date == date(2024, 1, 3)
    assert transaction.user_id == identity.user_id
    assert transaction.subscription_id == subscription.id
    assert await billing_date(db_session, subscription.id) == date(2024, 2, 1)


@pytest.mark.asyncio
async def test_late_payment_does_not_shift_schedule(
    db_session: AsyncSession, identity: Identity, make_subscription
) -> None:
    subscription = await make_subscription(
        identity,
        interval=BillingInterval.QUARTERLY,
        next_billing_date=date(2024, 1, 15),
    )

    await BillingLedger(db_session).record_payment(
        identity.user_id, subscription.id, date(2024, 3, 30)
    )

    assert await billing_date(db_session, subscription.id) == date(2024, 4, 15)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("interval", "start", "payments", "expected"),
    [
        (BillingInterval.MONTHLY, date(2024, 1, 1), 3, date(2024, 4, 1)),
        (BillingInterval.QUARTERLY, date(2024, 1, 1), 4, date(2025, 1, 1)),
        (BillingInterval.YEARLY, date(2024, 2, 29), 2, date(2026, 2, 28)),
    ],
)
async def test_repeated_payments_advance_n_periods(
    db_session: AsyncSession,
    identity: Identity,
    make_subscription,
    interval: BillingInterval,
    start: date,
    payments: int,
    expected: date,
) -> None:
    subscription = await make_subscription(identity, interval=interval, next_billing_date=start)
    ledger = BillingLedger(db_session)

    invoice_dates = []
    for _ in range(payments):
        transaction = await ledger.record_payment(identity.user_id, subscription.id, date(2030, 1, 1))
        invoice_dates.append(transaction.invoice_date)

    assert await billing_date(db_session, subscription.id) == expected
    assert invoice_dates[0] == start
    assert invoice_dates == sorted(set(invoice_dates))
    assert await transaction_count(db_session) == payments


@pytest.mark.asyncio
async def test_amount_is_snapshotted(
    db_session: AsyncSession, identity: Identity, make_subscription
) -> None:
    subscription = await make_subscription(identity, amount=500)
    ledger = BillingLedger(db_session)
    first = await ledger.record_payment(identity.user_id, subscription.id, date(2024, 1, 1))

    await SubscriptionRegistry(db_session).update(
        identity.user_id, subscription.id, {"amount": 700, "currency": "EUR"}
    )
    second = await ledger.record_payment(identity.user_id, subscription.id, date(2024, 2, 1))

    await db_session.refresh(first)
    assert (first.amount, first.currency) == (500, "USD")
    assert (second.amount, second.currency) == (700, "EUR")


@pytest.mark.asyncio
async def test_failure_between_insert_and_advance_rolls_back_both(
    db_session: AsyncSession, identity: Identity, make_subscription
) -> None:
    subscription = await make_subscription(identity, next_billing_date=date(2024, 1, 1))
    subscription_id = subscription.id

    with (
        patch.object(
            BillingLedger,
            "_advance_schedule",
            side_effect=RuntimeError("injected failure"),
        ),
        pytest.raises(RuntimeError),
    ):
        await BillingLedger(db_session).record_payment(
            identity.user_id, subscription_id, date(2024, 1, 3)
        )

    assert await transaction_count(db_session) == 0
    assert await billing_date(db_session, subscription_id) == date(2024, 1, 1)


@pytest.mark.asyncio
async def test_uses_subscription_payment_method(
    db_session: AsyncSession, identity: Identity, make_subscription
) -> None:
    method = await PaymentMethodService(db_session).create(identity.user_id, "Visa")
    subscription = await make_subscription(identity, payment_method_id=method.id)

    transaction = await BillingLedger(db_session).record_payment(
        identity.user_id, subscription.id, date(2024, 1, 3)
    )

    assert transaction.payment_method_id == method.id


@pytest.mark.asyncio
async def test_payment_method_override(
    db_session: AsyncSession, identity: Identity, make_subscription
) -> None:
    service = PaymentMethodService(db_session)
    card = await service.create(identity.user_id, "Visa")
    bank = await service.create(identity.user_id, "Bank transfer")
    subscription = await make_subscription(identity, payment_method_id=card.id)

    transaction = await BillingLedger(db_session).record_payment(
        identity.user_id, subscription.id, date(2024, 1, 3), payment_method_id=bank.id
    )

    assert transaction.payment_method_id == bank.id


@pytest.mark.asyncio
async def test_foreign_payment_method_override_rejected(
    db_session: AsyncSession,
    identity: Identity,
    other_identity: Identity,
    make_subscription,
) -> None:
    theirs = await PaymentMethodService(db_session).create(other_identity.user_id, "Visa")
    theirs_id = theirs.id
    subscription = await make_subscription(identity)
    subscription_id = subscription.id

    with pytest.raises(PaymentMethodNotFoundError):
        await BillingLedger(db_session).record_payment(
            identity.user_id, subscription_id, date(2024, 1, 3), payment_method_id=theirs_id
        )

    assert await transaction_count(db_session) == 0
    assert await billing_date(db_session, subscription_id) == date(2024, 1, 1)


@pytest.mark.asyncio
async def test_other_users_subscription_is_not_found(
    db_session: AsyncSession,
    identity: Identity,
    other_identity: Identity,
    make_subscription,
) -> None:
    theirs = await make_subscription(other_identity)
    theirs_id = theirs.id

    with pytest.raises(SubscriptionNotFoundError):
        await BillingLedger(db_session).record_payment(
            identity.user_id, theirs_id, date(2024, 1, 3)
        )

    assert await transaction_count(db_session) == 0
    assert await billing_date(db_session, theirs_id) == date(2024, 1, 1)


@pytest.mark.asyncio
async def test_deleted_subscription_is_not_found(
    db_session: AsyncSession, identity: Identity, make_subscription
) -> None:
    subscription = await make_subscription(identity)
    subscription_id = subscription.id
    await SubscriptionRegistry(db_session).delete(identity.user_id, subscription_id)
    await db_session.commit()

    with pytest.raises(SubscriptionNotFoundError):
        await BillingLedger(db_session).record_payment(
            identity.user_id, subscription_id, date(2024, 1, 3)
        )
