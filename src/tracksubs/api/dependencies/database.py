"""Database session dependency."""

from tracksubs.core.database import get_session as get_db

__all__ = ["get_db"]
