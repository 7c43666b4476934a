"""Per-user usage counters.

Counters are changed with a single ``UPDATE usage SET c = c + :delta``
statement so concurrent requests for the same user serialize on the row
instead of losing updates. Decrements carry a ``c >= :delta`` guard; when the
guard rejects the update the counters are already out of step with the rows
they summarize and the store fails loudly instead of clamping.
"""

import enum
from typing import NamedTuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from tracksubs.core.exceptions import CounterUnderflowError, UserNotFoundError
from tracksubs.core.logging import LoggerMixin
from tracksubs.core.metrics import track_usage_adjustment
from tracksubs.models.user import Usage, User


class CounterName(str, enum.Enum):
    """Usage counters kept per user."""

    SUBSCRIPTIONS = "subscriptions"
    ALERTS = "alerts"


class UsageSnapshot(NamedTuple):
    """Counter values read at one point in time."""

    total_subscriptions: int
    total_alerts: int


_COUNTER_COLUMNS: dict[CounterName, InstrumentedAttribute[int]] = {
    CounterName.SUBSCRIPTIONS: Usage.total_subscriptions,
    CounterName.ALERTS: Usage.total_alerts,
}


class UsageCounterStore(LoggerMixin):
    """Atomic increments and decrements of a user's usage counters."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize usage counter store.

        Args:
            db: Database session shared with the calling operation
        """
        self.db = db

    async def get(self, user_id: UUID) -> UsageSnapshot:
        """Read the current counters for a user.

        Raises:
            UserNotFoundError: If the user has no usage row
        """
        result = await self.db.execute(
            select(Usage.total_subscriptions, Usage.total_alerts)
            .join(User, User.usage_id == Usage.id)
            .where(User.id == user_id),
        )
        row = result.one_or_none()
        if row is None:
            raise UserNotFoundError(resource_id=str(user_id))
        return UsageSnapshot(row.total_subscriptions, row.total_alerts)

    async def increment(
        self,
        user_id: UUID,
        counter: CounterName | str,
        delta: int = 1,
    ) -> int:
        """Atomically add ``delta`` to a counter and return the new value."""
        return await self._adjust(user_id, CounterName(counter), _positive(delta))

    async def decrement(
        self,
        user_id: UUID,
        counter: CounterName | str,
        delta: int = 1,
    ) -> int:
        """Atomically subtract ``delta`` from a counter and return the new value.

        Raises:
            CounterUnderflowError: If the counter would drop below zero
        """
        return await self._adjust(user_id, CounterName(counter), -_positive(delta))

    async def _adjust(self, user_id: UUID, counter: CounterName, delta: int) -> int:
        column = _COUNTER_COLUMNS[counter]
        usage_id = select(User.usage_id).where(User.id == user_id).scalar_subquery()

        stmt = update(Usage).where(Usage.id == usage_id)
        if delta < 0:
            stmt = stmt.where(column >= -delta)
        stmt = (
            stmt.values({column: column + delta})
            .returning(column)
            .execution_options(synchronize_session=False)
        )

        result = await self.db.execute(stmt)
        value = result.scalar_one_or_none()

        if value is None:
            await self._raise_for_missed_update(user_id, counter, delta)

        track_usage_adjustment(counter.value, delta)
        self.logger.debug(
            "usage_counter_adjusted",
            user_id=str(user_id),
            counter=counter.value,
            delta=delta,
            value=value,
        )
        return int(value)

    async def _raise_for_missed_update(
        self,
        user_id: UUID,
        counter: CounterName,
        delta: int,
    ) -> None:
        snapshot = await self.get(user_id)
        current = (
            snapshot.total_subscriptions
            if counter is CounterName.SUBSCRIPTIONS
            else snapshot.total_alerts
        )
        self.logger.critical(
            "usage_counter_underflow",
            user_id=str(user_id),
            counter=counter.value,
            delta=delta,
            current=current,
        )
        raise CounterUnderflowError(
            details={"counter": counter.value, "current": current, "delta": delta},
        )


def _positive(delta: int) -> int:
    if delta < 1:
        raise ValueError(f"Counter delta must be a positive integer, got {delta}")
    return delta
