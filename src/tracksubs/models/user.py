"""User and usage counter models."""

import enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracksubs.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tracksubs.models.payment_method import PaymentMethod


class UserPlan(str, enum.Enum):
    """Plan the user is on; gates export features."""

    FREE = "FREE"
    BASIC = "BASIC"
    PRO = "PRO"


class Usage(Base, TimestampMixin):
    """Denormalized per-user aggregate counts.

    Only ever written through ``UsageCounterStore`` with single-statement
    increments, never read-modify-write.
    """

    __tablename__ = "usage"
    __table_args__ = (
        CheckConstraint("total_subscriptions >= 0", name="total_subscriptions_non_negative"),
        CheckConstraint("total_alerts >= 0", name="total_alerts_non_negative"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    total_subscriptions: Mapped[int] = mapped_column(default=0, nullable=False)
    total_alerts: Mapped[int] = mapped_column(default=0, nullable=False)

    user: Mapped["User"] = relationship(back_populates="usage")


class User(Base, TimestampMixin):
    """Account root; owns subscriptions, payment methods and transactions."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    auth_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    usage_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("usage.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    is_onboarded: Mapped[bool] = mapped_column(default=False, nullable=False)
    plan: Mapped[UserPlan] = mapped_column(
        Enum(UserPlan, native_enum=False, length=16),
        default=UserPlan.FREE,
        nullable=False,
    )

    usage: Mapped["Usage"] = relationship(back_populates="user")
    payment_methods: Mapped[list["PaymentMethod"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
