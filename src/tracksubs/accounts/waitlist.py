"""Waitlist for people without an account yet."""

from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.core.database import atomic
from tracksubs.core.exceptions import ConflictError
from tracksubs.core.logging import LoggerMixin
from tracksubs.models.waitlist import WaitlistEntry

ALREADY_ADDED = "ALREADY_ADDED"


class WaitlistService(LoggerMixin):
    """Adds emails to the waitlist.

    Uniqueness is enforced by the ``waitlist_email_unique`` constraint, so two
    concurrent signups with the same email cannot both succeed.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def add(self, email: str) -> WaitlistEntry:
        """Add an email to the waitlist.

        Raises:
            ConflictError: With reason ``ALREADY_ADDED`` for a duplicate email
        """
        normalized = email.strip().lower()
        try:
            async with atomic(self.db):
                entry = WaitlistEntry(email=normalized)
                self.db.add(entry)
        except ConflictError as exc:
            raise ConflictError(
                "Email is already on the waitlist",
                reason=ALREADY_ADDED,
            ) from exc

        self.logger.info("waitlist_entry_added", waitlist_id=str(entry.id))
        return entry
