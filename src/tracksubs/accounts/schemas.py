"""Pydantic schemas for user profiles, the service catalog and the waitlist."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from tracksubs.models.user import UserPlan


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile.

    Counters, plan and identity fields are not listed and therefore rejected.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    timezone: str | None = Field(None, max_length=64)
    currency: str | None = Field(None, min_length=3, max_length=3, pattern=r"^[A-Z]{3}$")
    is_onboarded: bool | None = None
    image_url: str | None = Field(None, max_length=500)


class ProfileResponse(BaseModel):
    """Schema for the current user's profile with usage counters."""

    id: UUID
    auth_id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    image_url: str | None
    timezone: str | None
    currency: str | None
    is_onboarded: bool
    plan: UserPlan
    total_subscriptions: int
    total_alerts: int


class ServiceResponse(BaseModel):
    """Schema for a catalog service."""

    key: str
    title: str
    website: str | None

    model_config = ConfigDict(from_attributes=True)


class WaitlistCreate(BaseModel):
    """Schema for joining the waitlist."""

    email: EmailStr


class WaitlistResponse(BaseModel):
    """Schema for a waitlist entry."""

    email: str
