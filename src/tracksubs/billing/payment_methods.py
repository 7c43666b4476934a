"""Payment method management, scoped to the owning user."""

from uuid import UUID

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.billing.models import Subscription, Transaction
from tracksubs.core.database import atomic
from tracksubs.core.exceptions import ConflictError, PaymentMethodNotFoundError
from tracksubs.core.logging import LoggerMixin
from tracksubs.models.payment_method import PaymentMethod


class PaymentMethodService(LoggerMixin):
    """Service for a user's payment methods."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize payment method service.

        Args:
            db: Database session
        """
        self.db = db

    async def list_payment_methods(self, user_id: UUID) -> list[PaymentMethod]:
        """List the user's payment methods ordered by title."""
        result = await self.db.execute(
            select(PaymentMethod)
            .where(PaymentMethod.user_id == user_id)
            .order_by(PaymentMethod.title.asc()),
        )
        return list(result.scalars().all())

    async def get_owned(self, user_id: UUID, payment_method_id: UUID) -> PaymentMethod:
        """Get a payment method owned by the user.

        Raises:
            PaymentMethodNotFoundError: If it does not exist or belongs to someone else
        """
        result = await self.db.execute(
            select(PaymentMethod).where(
                PaymentMethod.id == payment_method_id,
                PaymentMethod.user_id == user_id,
            ),
        )
        payment_method = result.scalar_one_or_none()
        if payment_method is None:
            raise PaymentMethodNotFoundError(resource_id=str(payment_method_id))
        return payment_method

    async def create(self, user_id: UUID, title: str) -> PaymentMethod:
        """Create a payment method for the user."""
        async with atomic(self.db):
            payment_method = PaymentMethod(user_id=user_id, title=title)
            self.db.add(payment_method)

        self.logger.info(
            "payment_method_created",
            user_id=str(user_id),
            payment_method_id=str(payment_method.id),
        )
        return payment_method

    async def delete(self, user_id: UUID, payment_method_id: UUID) -> UUID:
        """Delete a payment method and detach it from the user's subscriptions.

        Raises:
            PaymentMethodNotFoundError: If not owned by the user
            ConflictError: If ledger transactions reference it
        """
        async with atomic(self.db):
            await self.get_owned(user_id, payment_method_id)

            referenced = await self.db.scalar(
                select(
                    exists().where(Transaction.payment_method_id == payment_method_id),
                ),
            )
            if referenced:
                raise ConflictError(
                    "Payment method is referenced by recorded transactions",
                    reason="PAYMENT_METHOD_IN_USE",
                )

            await self.db.execute(
                update(Subscription)
                .where(
                    Subscription.user_id == user_id,
                    Subscription.payment_method_id == payment_method_id,
                )
                .values(payment_method_id=None)
                .execution_options(synchronize_session=False),
            )
            await self.db.execute(
                delete(PaymentMethod)
                .where(
                    PaymentMethod.id == payment_method_id,
                    PaymentMethod.user_id == user_id,
                )
                .execution_options(synchronize_session=False),
            )

        self.logger.info(
            "payment_method_deleted",
            user_id=str(user_id),
            payment_method_id=str(payment_method_id),
        )
        return payment_method_id
