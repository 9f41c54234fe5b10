"""
Storage Service Factory

Provides a single entry point for obtaining the storage backing.
The factory pattern keeps handlers and services agnostic about where
entities actually live.

Usage:
    from app.services.storage import get_storage

    # Returns MemoryStorage or DatabaseStorage based on configuration
    storage = get_storage()

    session = await storage.get_order_session(1)

Backing selection:
    - STORAGE_BACKEND=memory   → MemoryStorage (seeded, volatile)
    - STORAGE_BACKEND=database → DatabaseStorage (DATABASE_URL)
    - unset: ENV_MODE=development → memory, staging/production → database

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from app.core.config import StorageBackend, get_settings
from app.services.storage.base import BaseStorage, utcnow
from app.services.storage.database import DatabaseStorage
from app.services.storage.memory import MemoryStorage, SAMPLE_MENU

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage() -> BaseStorage:
    """
    Get the configured storage instance.

    The instance is cached so every request shares the same store
    (and, for the memory backing, the same data).

    Returns:
        BaseStorage: Configured storage backing
    """
    settings = get_settings()

    if settings.storage_backend == StorageBackend.MEMORY:
        logger.info(
            f"Storage: Using MemoryStorage ({settings.env_mode.value} mode)"
        )
        return MemoryStorage(seed=True)

    logger.info(
        f"Storage: Using DatabaseStorage "
        f"({settings.env_mode.value} mode)"
    )
    return DatabaseStorage.from_url(settings.database_url, echo=settings.database_echo)


def reset_storage() -> None:
    """
    Clear the cached storage instance.

    Useful for testing or when configuration changes at runtime.
    The next call to get_storage() will create a new instance.
    """
    get_storage.cache_clear()
    logger.debug("Storage cache cleared")


__all__ = [
    "get_storage",
    "reset_storage",
    "utcnow",
    "BaseStorage",
    "MemoryStorage",
    "DatabaseStorage",
    "SAMPLE_MENU",
]
