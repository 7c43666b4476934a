"""Read-only catalog of known subscription services."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.accounts.schemas import ServiceResponse
from tracksubs.models.service import Service


class ServiceCatalog:
    """Global service catalog, shared by all users."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_services(self) -> dict[str, ServiceResponse]:
        """Return every service keyed by its ``key``, in title order."""
        result = await self.db.execute(select(Service).order_by(Service.title.asc()))
        return {
            service.key: ServiceResponse.model_validate(service)
            for service in result.scalars().all()
        }
