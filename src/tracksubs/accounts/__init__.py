"""Identity, user profiles, service catalog and waitlist."""

from tracksubs.accounts.catalog import ServiceCatalog
from tracksubs.accounts.resolver import Identity, IdentityResolver
from tracksubs.accounts.service import UserService
from tracksubs.accounts.waitlist import WaitlistService

__all__ = [
    "Identity",
    "IdentityResolver",
    "ServiceCatalog",
    "UserService",
    "WaitlistService",
]
