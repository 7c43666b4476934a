"""Transaction history, service catalog and waitlist routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.accounts.catalog import ServiceCatalog
from tracksubs.accounts.schemas import ServiceResponse, WaitlistCreate, WaitlistResponse
from tracksubs.accounts.waitlist import WaitlistService
from tracksubs.api.dependencies.database import get_db
from tracksubs.api.dependencies.identity import CurrentIdentity
from tracksubs.billing.projections import ProjectionService
from tracksubs.billing.schemas import TransactionRow
from tracksubs.schemas.base import ActionResponse

router = APIRouter()


@router.get("/transactions", response_model=ActionResponse[list[TransactionRow]])
async def list_transactions(
    identity: CurrentIdentity,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActionResponse[list[TransactionRow]]:
    """List the user's payment history with subscription and method titles."""
    rows = await ProjectionService(db).list_transactions(identity.user_id)
    return ActionResponse.success(rows)


@router.get("/services", response_model=ActionResponse[dict[str, ServiceResponse]])
async def list_services(
    _identity: CurrentIdentity,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActionResponse[dict[str, ServiceResponse]]:
    """List known services keyed by service key."""
    return ActionResponse.success(await ServiceCatalog(db).list_services())


@router.post(
    "/waitlist",
    response_model=ActionResponse[WaitlistResponse],
    status_code=status.HTTP_201_CREATED,
)
async def join_waitlist(
    payload: WaitlistCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActionResponse[WaitlistResponse]:
    """Add an email to the waitlist. Does not require a session."""
    entry = await WaitlistService(db).add(payload.email)
    return ActionResponse.success(WaitlistResponse(email=entry.email))
