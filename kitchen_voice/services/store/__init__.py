"""
Data Store Factory

Provides a single entry point for obtaining the order/menu store.

Usage:
    from kitchen_voice.services.store import get_data_store

    # Returns InMemoryDataStore or SqlDataStore based on ENV_MODE
    store = get_data_store()
    snapshot = await store.fetch_snapshot()

Environment Switching:
    - ENV_MODE=development → InMemoryDataStore (seeded, no database)
    - ENV_MODE=staging → SqlDataStore
    - ENV_MODE=production → SqlDataStore

Version: 4.0.0
"""

import logging
from functools import lru_cache

from kitchen_voice.core.config import get_settings
from kitchen_voice.services.store.base import (
    BaseDataStore,
    MenuItemSnapshot,
    OrderSnapshot,
    Snapshot,
)
from kitchen_voice.services.store.mock import InMemoryDataStore
from kitchen_voice.services.store.sql import SqlDataStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_data_store() -> BaseDataStore:
    """
    Get the configured data store instance.

    The instance is cached so the in-memory store keeps its state for the
    lifetime of the process.

    Returns:
        BaseDataStore: Configured data store instance
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Data Store: Using InMemoryDataStore (development mode)")
        return InMemoryDataStore.seeded()
    else:
        from kitchen_voice.database import async_session_maker

        logger.info(
            f"Data Store: Using SqlDataStore "
            f"({settings.env_mode.value} mode)"
        )
        return SqlDataStore(async_session_maker)


def reset_data_store() -> None:
    """
    Clear the cached data store instance.

    The next call to get_data_store() will create a new instance.
    """
    get_data_store.cache_clear()
    logger.debug("Data store cache cleared")


__all__ = [
    "get_data_store",
    "reset_data_store",
    "BaseDataStore",
    "OrderSnapshot",
    "MenuItemSnapshot",
    "Snapshot",
    "InMemoryDataStore",
    "SqlDataStore",
]
