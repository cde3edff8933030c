"""
KennelMate Backend - FastAPI Dependencies

Purpose: Shared dependencies for dependency injection.

The caller arrives already authenticated; the gateway forwards the user id in
the X-User-Id header and a per-login session id in X-Session-Id. Every store
handed to a route is bound to that user.
"""

import logging
from collections import OrderedDict
from functools import lru_cache
from typing import Optional, Tuple, Union

from fastapi import Depends, Header, HTTPException, status

from kennelmate.config import settings
from kennelmate.services.legacy import FileLegacyReminderSource, LegacyReminderSource
from kennelmate.services.memory_store import MemoryStoreFactory
from kennelmate.services.migration import MigrationContext
from kennelmate.services.pipeline import ReminderService
from kennelmate.services.stores import DynamoStoreFactory, UserStores

logger = logging.getLogger(__name__)

StoreFactory = Union[DynamoStoreFactory, MemoryStoreFactory]

# Migration contexts live for the session that created them, least recently
# used first; capped at MIGRATION_SESSION_CACHE_SIZE
_migration_contexts: "OrderedDict[Tuple[str, str], MigrationContext]" = OrderedDict()


# Service dependencies
@lru_cache()
def get_store_factory() -> StoreFactory:
    """Get the store factory for the configured backend"""
    if settings.STORE_BACKEND == "memory":
        return MemoryStoreFactory()
    return DynamoStoreFactory()


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Authenticated user id forwarded by the gateway"""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return x_user_id


def require_reminders_enabled():
    if not settings.ENABLE_REMINDERS:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reminders feature is disabled"
        )


def get_user_stores(
    user_id: str = Depends(get_user_id),
    factory: StoreFactory = Depends(get_store_factory),
) -> UserStores:
    """Get stores bound to the calling user"""
    return factory.for_user(user_id)


def get_legacy_source(user_id: str = Depends(get_user_id)) -> LegacyReminderSource:
    """Get the legacy reminder data for the calling user"""
    return FileLegacyReminderSource(user_id)


def get_reminder_service(stores: UserStores = Depends(get_user_stores)) -> ReminderService:
    """Get reminder service instance"""
    return ReminderService(stores)


def get_migration_context(
    x_session_id: Optional[str] = Header(None),
    stores: UserStores = Depends(get_user_stores),
    legacy: LegacyReminderSource = Depends(get_legacy_source),
) -> MigrationContext:
    """
    Get the migration context for this session

    Requests without a session id get a fresh context; the persisted flag
    still keeps the migration from running twice.
    """
    if not x_session_id:
        return MigrationContext(user_id=stores.user_id, stores=stores, legacy=legacy)

    key = (stores.user_id, x_session_id)
    context = _migration_contexts.get(key)

    if context is not None:
        _migration_contexts.move_to_end(key)
        return context

    context = MigrationContext(user_id=stores.user_id, stores=stores, legacy=legacy)
    _migration_contexts[key] = context
    logger.debug(f"New migration context for session {x_session_id}")

    while len(_migration_contexts) > settings.MIGRATION_SESSION_CACHE_SIZE:
        (user_id, session_id), _ = _migration_contexts.popitem(last=False)
        logger.debug(f"Evicted migration context for session {session_id} of {user_id}")

    return context


def reset_migration_contexts():
    """Forget all session migration contexts"""
    _migration_contexts.clear()
