"""Pydantic schemas for subscriptions, payments and exports."""

from datetime import date
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from tracksubs.billing.models import BillingInterval

IntervalFilter = Literal["ALL", "MONTHLY", "QUARTERLY", "YEARLY"]


class SubscriptionCreate(BaseModel):
    """Schema for creating a subscription."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=100)
    website: str | None = Field(None, max_length=255)
    service: str | None = Field(None, max_length=64)
    amount: int = Field(..., ge=0, description="Recurring amount in minor currency units")
    currency: str = Field(..., min_length=3, max_length=3, pattern=r"^[A-Z]{3}$")
    interval: BillingInterval
    is_active: bool = True
    email_alert: bool = False
    next_billing_date: date
    payment_method_id: UUID | None = None


class SubscriptionUpdate(BaseModel):
    """Schema for updating a subscription.

    ``next_billing_date`` belongs to the billing ledger and ``email_alert`` to
    the alert toggle; neither is accepted here.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=100)
    website: str | None = Field(None, max_length=255)
    service: str | None = Field(None, max_length=64)
    amount: int | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3, pattern=r"^[A-Z]{3}$")
    interval: BillingInterval | None = None
    is_active: bool | None = None
    payment_method_id: UUID | None = None


class SubscriptionAlertUpdate(BaseModel):
    """Schema for toggling a subscription's email alert."""

    enabled: bool


class SubscriptionResponse(BaseModel):
    """Schema for subscription response."""

    id: UUID
    user_id: UUID
    title: str
    website: str | None
    service: str | None
    amount: int
    currency: str
    interval: BillingInterval
    is_active: bool
    email_alert: bool
    next_billing_date: date
    payment_method_id: UUID | None

    model_config = ConfigDict(from_attributes=True)


class PaymentRecordRequest(BaseModel):
    """Schema for recording that a subscription charge was paid."""

    model_config = ConfigDict(extra="forbid")

    paid_on: date
    payment_method_id: UUID | None = Field(
        None,
        description="Overrides the subscription's payment method for this payment",
    )


class TransactionResponse(BaseModel):
    """Schema for a recorded ledger transaction."""

    id: UUID
    subscription_id: UUID
    payment_method_id: UUID | None
    amount: int
    currency: str
    invoice_date: date
    paid_date: date

    model_config = ConfigDict(from_attributes=True)


class TransactionRow(BaseModel):
    """Transaction joined with its subscription and payment method for display."""

    id: UUID
    amount: float
    currency: str
    invoice_date: date
    paid_date: date
    payment_method_id: UUID | None
    subscription_id: UUID
    title: str
    service: str | None
    payment_method: str | None


class PaymentMethodCreate(BaseModel):
    """Schema for creating a payment method."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=100)


class PaymentMethodResponse(BaseModel):
    """Schema for payment method response."""

    id: UUID
    title: str

    model_config = ConfigDict(from_attributes=True)


class ExportRequest(BaseModel):
    """Column mapping for subscription export: field name -> header label."""

    columns: dict[str, str] = Field(..., min_length=1)
