"""Subscription registry, ledger and export routes."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.api.dependencies.database import get_db
from tracksubs.api.dependencies.identity import CurrentIdentity
from tracksubs.billing.ledger import BillingLedger
from tracksubs.billing.projections import ProjectionService, render_csv
from tracksubs.billing.registry import SubscriptionRegistry
from tracksubs.billing.schemas import (
    ExportRequest,
    IntervalFilter,
    PaymentRecordRequest,
    SubscriptionAlertUpdate,
    SubscriptionCreate,
    SubscriptionResponse,
    TransactionResponse,
)
from tracksubs.schemas.base import ActionResponse, IdResponse

router = APIRouter()


async def get_registry(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SubscriptionRegistry:
    """Dependency to get the subscription registry."""
    return SubscriptionRegistry(db)


async def get_ledger(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BillingLedger:
    """Dependency to get the billing ledger."""
    return BillingLedger(db)


async def get_projections(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProjectionService:
    """Dependency to get the projection service."""
    return ProjectionService(db)


@router.get("", response_model=ActionResponse[list[SubscriptionResponse]])
async def list_subscriptions(
    identity: CurrentIdentity,
    registry: Annotated[SubscriptionRegistry, Depends(get_registry)],
    interval: Annotated[IntervalFilter, Query()] = "ALL",
) -> ActionResponse[list[SubscriptionResponse]]:
    """List live subscriptions, active first, then by next billing date."""
    subscriptions = await registry.list_subscriptions(identity.user_id, interval)
    return ActionResponse.success(
        [SubscriptionResponse.model_validate(s) for s in subscriptions],
    )


@router.post(
    "",
    response_model=ActionResponse[SubscriptionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    payload: SubscriptionCreate,
    identity: CurrentIdentity,
    registry: Annotated[SubscriptionRegistry, Depends(get_registry)],
) -> ActionResponse[SubscriptionResponse]:
    """Create a subscription."""
    subscription = await registry.create(identity.user_id, payload)
    return ActionResponse.success(SubscriptionResponse.model_validate(subscription))


@router.patch("/{subscription_id}", response_model=ActionResponse[SubscriptionResponse])
async def update_subscription(
    subscription_id: UUID,
    identity: CurrentIdentity,
    registry: Annotated[SubscriptionRegistry, Depends(get_registry)],
    payload: Annotated[dict[str, Any], Body()],
) -> ActionResponse[SubscriptionResponse]:
    """Partially update a subscription.

    The body is passed through untyped so that protected fields are reported
    as immutable rather than unknown.
    """
    subscription = await registry.update(identity.user_id, subscription_id, payload)
    return ActionResponse.success(SubscriptionResponse.model_validate(subscription))


@router.delete("/{subscription_id}", response_model=ActionResponse[IdResponse])
async def delete_subscription(
    subscription_id: UUID,
    identity: CurrentIdentity,
    registry: Annotated[SubscriptionRegistry, Depends(get_registry)],
) -> ActionResponse[IdResponse]:
    """Delete a subscription."""
    deleted_id = await registry.delete(identity.user_id, subscription_id)
    return ActionResponse.success(IdResponse(id=str(deleted_id)))


@router.put("/{subscription_id}/alert", response_model=ActionResponse[SubscriptionResponse])
async def set_subscription_alert(
    subscription_id: UUID,
    payload: SubscriptionAlertUpdate,
    identity: CurrentIdentity,
    registry: Annotated[SubscriptionRegistry, Depends(get_registry)],
) -> ActionResponse[SubscriptionResponse]:
    """Enable or disable the email alert."""
    subscription = await registry.set_alert(identity.user_id, subscription_id, payload.enabled)
    return ActionResponse.success(SubscriptionResponse.model_validate(subscription))


@router.post(
    "/{subscription_id}/payments",
    response_model=ActionResponse[TransactionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    subscription_id: UUID,
    payload: PaymentRecordRequest,
    identity: CurrentIdentity,
    ledger: Annotated[BillingLedger, Depends(get_ledger)],
) -> ActionResponse[TransactionResponse]:
    """Record a payment and advance the subscription's next billing date."""
    transaction = await ledger.record_payment(
        identity.user_id,
        subscription_id,
        payload.paid_on,
        payment_method_id=payload.payment_method_id,
    )
    return ActionResponse.success(TransactionResponse.model_validate(transaction))


@router.post("/export", response_model=ActionResponse[list[dict[str, Any]]])
async def export_subscriptions(
    payload: ExportRequest,
    identity: CurrentIdentity,
    projections: Annotated[ProjectionService, Depends(get_projections)],
) -> ActionResponse[list[dict[str, Any]]]:
    """Export subscriptions as rows keyed by the requested headers."""
    rows = await projections.export_subscriptions(identity.user_id, payload.columns)
    return ActionResponse.success(rows)


@router.post("/export.csv", response_class=Response)
async def export_subscriptions_csv(
    payload: ExportRequest,
    identity: CurrentIdentity,
    projections: Annotated[ProjectionService, Depends(get_projections)],
) -> Response:
    """Export subscriptions as a CSV file."""
    rows = await projections.export_subscriptions(identity.user_id, payload.columns)
    return Response(
        content=render_csv(rows, list(payload.columns.values())),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="subscriptions.csv"'},
    )
