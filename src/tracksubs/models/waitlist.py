"""Waitlist model."""

from uuid import UUID, uuid4

from sqlalchemy import String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tracksubs.models.base import Base, TimestampMixin


class WaitlistEntry(Base, TimestampMixin):
    """Email address waiting for an invite."""

    __tablename__ = "waitlist"
    __table_args__ = (UniqueConstraint("email", name="waitlist_email_unique"),)

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
