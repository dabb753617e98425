"""Repository selection from configuration."""

from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from .base import Repository
from .memory import InMemoryRepository
from .sql import SQLRepository

logger = structlog.get_logger()

MEMORY_BACKEND = "memory"


def create_repository(settings: Settings) -> Optional[Repository]:
    """Create the configured chat store.

    Returns None when no database is configured or the database URL is
    unusable, in which case chat history is not persisted.
    """
    if not settings.database_url:
        logger.warning("database_not_configured", detail="chat history will not be saved")
        return None
    if settings.database_url == MEMORY_BACKEND:
        return InMemoryRepository()
    try:
        return SQLRepository(settings.database_url)
    except SQLAlchemyError as e:
        logger.error("repository_error", operation="create_engine", error=str(e))
        return None
