"""Business logic: size-routed storage and the Google Drive OAuth bootstrap."""

from app.services.storage_router import (
    ProviderConfig,
    StorageRouter,
    TierOutcome,
    build_storage_router,
    get_storage_router,
)

__all__ = [
    "ProviderConfig",
    "StorageRouter",
    "TierOutcome",
    "build_storage_router",
    "get_storage_router",
]
