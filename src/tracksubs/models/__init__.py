"""SQLAlchemy models."""

from tracksubs.models.base import Base, TimestampMixin
from tracksubs.models.payment_method import PaymentMethod
from tracksubs.models.service import Service
from tracksubs.models.user import Usage, User, UserPlan
from tracksubs.models.waitlist import WaitlistEntry

__all__ = [
    "Base",
    "PaymentMethod",
    "Service",
    "TimestampMixin",
    "Usage",
    "User",
    "UserPlan",
    "WaitlistEntry",
]
