"""User profile service."""

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.accounts.schemas import ProfileResponse, ProfileUpdate
from tracksubs.core.database import atomic
from tracksubs.core.exceptions import UserNotFoundError
from tracksubs.core.logging import LoggerMixin
from tracksubs.models.user import Usage, User
from tracksubs.schemas.base import parse_payload


class UserService(LoggerMixin):
    """Read and edit the caller's own profile."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize user service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_profile(self, user_id: UUID) -> ProfileResponse:
        """Get the user's profile joined with usage counters.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        result = await self.db.execute(
            select(User, Usage.total_subscriptions, Usage.total_alerts)
            .join(Usage, Usage.id == User.usage_id)
            .where(User.id == user_id)
            .execution_options(populate_existing=True),
        )
        row = result.one_or_none()
        if row is None:
            raise UserNotFoundError(resource_id=str(user_id))

        user = row.User
        return ProfileResponse(
            id=user.id,
            auth_id=user.auth_id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            image_url=user.image_url,
            timezone=user.timezone,
            currency=user.currency,
            is_onboarded=user.is_onboarded,
            plan=user.plan,
            total_subscriptions=row.total_subscriptions,
            total_alerts=row.total_alerts,
        )

    async def update_profile(
        self,
        user_id: UUID,
        fields: ProfileUpdate | Mapping[str, Any],
    ) -> ProfileResponse:
        """Apply an allow-listed partial update to the user's profile.

        Raises:
            InvalidInputError: If a field is not editable or a value is invalid
            UserNotFoundError: If the user does not exist
        """
        changes = parse_payload(ProfileUpdate, fields).model_dump(exclude_unset=True)
        if "is_onboarded" in changes and changes["is_onboarded"] is None:
            changes.pop("is_onboarded")

        if changes:
            async with atomic(self.db):
                result = await self.db.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(**changes)
                    .returning(User.id)
                    .execution_options(synchronize_session=False),
                )
                if result.scalar_one_or_none() is None:
                    raise UserNotFoundError(resource_id=str(user_id))

            self.logger.info("profile_updated", user_id=str(user_id), fields=sorted(changes))

        return await self.get_profile(user_id)
