"""Payment method routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.api.dependencies.database import get_db
from tracksubs.api.dependencies.identity import CurrentIdentity
from tracksubs.billing.payment_methods import PaymentMethodService
from tracksubs.billing.schemas import PaymentMethodCreate, PaymentMethodResponse
from tracksubs.schemas.base import ActionResponse, IdResponse

router = APIRouter()


async def get_payment_method_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentMethodService:
    """Dependency to get the payment method service."""
    return PaymentMethodService(db)


@router.get("", response_model=ActionResponse[list[PaymentMethodResponse]])
async def list_payment_methods(
    identity: CurrentIdentity,
    service: Annotated[PaymentMethodService, Depends(get_payment_method_service)],
) -> ActionResponse[list[PaymentMethodResponse]]:
    """List the user's payment methods."""
    methods = await service.list_payment_methods(identity.user_id)
    return ActionResponse.success([PaymentMethodResponse.model_validate(m) for m in methods])


@router.post(
    "",
    response_model=ActionResponse[PaymentMethodResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_method(
    payload: PaymentMethodCreate,
    identity: CurrentIdentity,
    service: Annotated[PaymentMethodService, Depends(get_payment_method_service)],
) -> ActionResponse[PaymentMethodResponse]:
    """Create a payment method."""
    method = await service.create(identity.user_id, payload.title)
    return ActionResponse.success(PaymentMethodResponse.model_validate(method))


@router.delete("/{payment_method_id}", response_model=ActionResponse[IdResponse])
async def delete_payment_method(
    payment_method_id: UUID,
    identity: CurrentIdentity,
    service: Annotated[PaymentMethodService, Depends(get_payment_method_service)],
) -> ActionResponse[IdResponse]:
    """Delete a payment method that no transaction references."""
    deleted_id = await service.delete(identity.user_id, payment_method_id)
    return ActionResponse.success(IdResponse(id=str(deleted_id)))
