"""Current user profile and session routes."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.accounts.resolver import IdentityResolver
from tracksubs.accounts.schemas import ProfileResponse
from tracksubs.accounts.service import UserService
from tracksubs.api.dependencies.database import get_db
from tracksubs.api.dependencies.identity import (
    CurrentIdentity,
    get_identity_resolver,
    get_session_token,
)
from tracksubs.schemas.base import ActionResponse

router = APIRouter()


async def get_user_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserService:
    """Dependency to get the user service."""
    return UserService(db)


@router.get("/me", response_model=ActionResponse[ProfileResponse])
async def get_profile(
    identity: CurrentIdentity,
    users: Annotated[UserService, Depends(get_user_service)],
) -> ActionResponse[ProfileResponse]:
    """
    Get the current user's profile.

    Includes plan and usage counters (subscription and alert totals).
    """
    return ActionResponse.success(await users.get_profile(identity.user_id))


@router.patch("/me", response_model=ActionResponse[ProfileResponse])
async def update_profile(
    identity: CurrentIdentity,
    users: Annotated[UserService, Depends(get_user_service)],
    payload: Annotated[dict[str, Any], Body()],
) -> ActionResponse[ProfileResponse]:
    """
    Update the current user's profile.

    Only name, timezone, currency, image and onboarding state are editable.
    """
    return ActionResponse.success(await users.update_profile(identity.user_id, payload))


@router.post("/session/revoke", response_model=ActionResponse[None])
async def revoke_session(
    _identity: CurrentIdentity,
    token: Annotated[str, Depends(get_session_token)],
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> ActionResponse[None]:
    """Revoke the session token used for this request."""
    await resolver.revoke(token)
    return ActionResponse.success(None)
