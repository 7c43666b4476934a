"""API routes module."""

from tracksubs.api.routes.catalog import router as catalog_router
from tracksubs.api.routes.health import router as health_router
from tracksubs.api.routes.payment_methods import router as payment_methods_router
from tracksubs.api.routes.subscriptions import router as subscriptions_router
from tracksubs.api.routes.users import router as users_router

__all__ = [
    "catalog_router",
    "health_router",
    "payment_methods_router",
    "subscriptions_router",
    "users_router",
]
