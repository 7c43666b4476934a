"""Tests for core module."""

from datetime import timedelta
from http import HTTPStatus
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.core.config import DEFAULT_JWT_SECRET, Settings, get_settings
from tracksubs.core.database import atomic
from tracksubs.core.exceptions import (
    ConflictError,
    ErrorCode,
    ImmutableFieldError,
    InvalidTokenError,
    PlanRestrictionError,
    SubscriptionNotFoundError,
    TrackSubsException,
    TransientStoreError,
    get_http_status_for_exception,
)
from tracksubs.core.security import create_access_token, decode_token, verify_token_type
from tracksubs.models.waitlist import WaitlistEntry


def test_settings_defaults() -> None:
    """Test default settings values."""
    settings = Settings()
    assert settings.app_name == "TrackSubs"
    assert settings.app_env == "development"
    assert settings.jwt_algorithm == "HS256"
    assert settings.api_v1_prefix == "/api/v1"


def test_get_settings_cached() -> None:
    """Test that settings are cached."""
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2


def test_production_rejects_default_secret() -> None:
    with pytest.raises(PydanticValidationError):
        Settings(app_env="production", jwt_secret_key=DEFAULT_JWT_SECRET)
    with pytest.raises(PydanticValidationError):
        Settings(app_env="production", jwt_secret_key="short")

    settings = Settings(app_env="production", jwt_secret_key="x" * 40)
    assert settings.is_production


def test_uses_sqlite() -> None:
    assert Settings(database_url="sqlite+aiosqlite:///:memory:").uses_sqlite
    assert not Settings(database_url="postgresql+asyncpg://u:p@db/tracksubs").uses_sqlite


def test_access_token_creation() -> None:
    """Test access token creation and decoding."""
    token = create_access_token({"sub": "auth_123", "email": "a@example.com"})
    payload = decode_token(token)
    assert payload is not None
    assert payload["sub"] == "auth_123"
    assert payload["email"] == "a@example.com"
    assert payload["type"] == "access"


def test_verify_token_type() -> None:
    """Test token type verification."""
    payload = decode_token(create_access_token({"sub": "auth_123"}))
    assert payload is not None
    assert verify_token_type(payload, "access")
    assert not verify_token_type(payload, "refresh")


def test_decode_invalid_token() -> None:
    """Test decoding invalid token."""
    assert decode_token("invalid.token.here") is None


def test_decode_expired_token() -> None:
    token = create_access_token({"sub": "auth_123"}, expires_delta=timedelta(seconds=-1))
    assert decode_token(token) is None


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_result_message_prefers_reason(self) -> None:
        exc = ConflictError("duplicate", reason="ALREADY_ADDED")
        assert exc.result_message == "ALREADY_ADDED"
        assert exc.http_status == HTTPStatus.CONFLICT

    def test_result_message_falls_back_to_user_message(self) -> None:
        exc = InvalidTokenError()
        assert exc.result_message == "User is not authorized."
        assert exc.error_code == ErrorCode.TOKEN_INVALID
        assert exc.http_status == HTTPStatus.UNAUTHORIZED

    def test_class_level_reason(self) -> None:
        exc = PlanRestrictionError()
        assert exc.result_message == "PLAN_UPGRADE_REQUIRED"
        assert exc.http_status == HTTPStatus.FORBIDDEN

    def test_transient_store_error_hides_details(self) -> None:
        exc = TransientStoreError("connection reset by peer")
        assert exc.result_message == "Something went wrong!"
        assert "connection reset" in str(exc)

    def test_validation_details(self) -> None:
        exc = ImmutableFieldError(field="next_billing_date", value="2024-01-01")
        assert exc.details == {"field": "next_billing_date", "value": "2024-01-01"}
        assert exc.error_code == ErrorCode.IMMUTABLE_FIELD
        assert str(exc).startswith("[TS4003]")

    def test_not_found_details(self) -> None:
        exc = SubscriptionNotFoundError(resource_id="abc")
        assert exc.details == {"resource_id": "abc"}
        assert exc.http_status == HTTPStatus.NOT_FOUND
        assert isinstance(exc, TrackSubsException)

    def test_http_status_mapping(self) -> None:
        assert get_http_status_for_exception(ConflictError()) == HTTPStatus.CONFLICT
        assert get_http_status_for_exception(ValueError()) == HTTPStatus.BAD_REQUEST
        assert get_http_status_for_exception(TimeoutError()) == HTTPStatus.SERVICE_UNAVAILABLE
        assert get_http_status_for_exception(KeyError()) == HTTPStatus.INTERNAL_SERVER_ERROR


class TestAtomic:
    """Tests for the atomic unit of work."""

    @pytest.mark.asyncio
    async def test_integrity_error_becomes_conflict(self, db_session: AsyncSession) -> None:
        db_session.add(WaitlistEntry(email="a@example.com"))
        await db_session.commit()

        with pytest.raises(ConflictError):
            async with atomic(db_session):
                db_session.add(WaitlistEntry(email="a@example.com"))

        count = await db_session.scalar(select(func.count()).select_from(WaitlistEntry))
        assert count == 1

    @pytest.mark.asyncio
    async def test_error_discards_block_writes(self, db_session: AsyncSession) -> None:
        with pytest.raises(RuntimeError):
            async with atomic(db_session):
                db_session.add(WaitlistEntry(email="b@example.com"))
                await db_session.flush()
                raise RuntimeError("boom")

        count = await db_session.scalar(select(func.count()).select_from(WaitlistEntry))
        assert count == 0

    @pytest.mark.asyncio
    async def test_outermost_block_commits(self, db_session: AsyncSession) -> None:
        async with atomic(db_session):
            db_session.add(WaitlistEntry(email="c@example.com"))
        await db_session.rollback()

        count = await db_session.scalar(select(func.count()).select_from(WaitlistEntry))
        assert count == 1

    @pytest.mark.asyncio
    async def test_nested_block_leaves_commit_to_outer(self, db_session: AsyncSession) -> None:
        with pytest.raises(RuntimeError):
            async with atomic(db_session):
                async with atomic(db_session):
                    db_session.add(WaitlistEntry(email="d@example.com"))
                raise RuntimeError("boom")

        count = await db_session.scalar(select(func.count()).select_from(WaitlistEntry))
        assert count == 0

    @pytest.mark.asyncio
    async def test_commit_failure_becomes_transient_error(
        self, db_session: AsyncSession
    ) -> None:
        lost = OperationalError("COMMIT", {}, Exception("connection lost"))

        with patch.object(db_session, "commit", AsyncMock(side_effect=lost)):
            with pytest.raises(TransientStoreError):
                async with atomic(db_session):
                    db_session.add(WaitlistEntry(email="e@example.com"))

        count = await db_session.scalar(select(func.count()).select_from(WaitlistEntry))
        assert count == 0
