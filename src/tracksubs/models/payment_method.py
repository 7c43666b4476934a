"""Payment method model."""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracksubs.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tracksubs.models.user import User


class PaymentMethod(Base, TimestampMixin):
    """A user-labelled way of paying (card, bank account, wallet)."""

    __tablename__ = "payment_methods"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)

    user: Mapped["User"] = relationship(back_populates="payment_methods")
