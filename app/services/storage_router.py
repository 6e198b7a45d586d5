"""Storage router: pick Supabase or Google Drive by file size, upload with one level of fallback, best-effort delete.

Routing rule: files >= threshold (10 MiB) go to Drive when it is configured, everything else to Supabase.
A Drive failure is logged and the same file is retried on Supabase; only a Supabase failure reaches the caller.
"""

import logging
import time
from dataclasses import dataclass

from app.config import DRIVE_THRESHOLD_BYTES, Settings, get_settings
from app.exceptions import ConfigurationError, InvalidUploadError, PrimaryUploadError, StorageError
from app.providers.storage import SupabaseStorageProvider, build_secondary_provider
from app.providers.storage.base import StorageProvider
from app.schemas.storage import StorageType, UploadRequest, UploadResult
from app.storage_logging import log_storage_event

logger = logging.getLogger("app.storage_router")


@dataclass(frozen=True)
class ProviderConfig:
    """Process-wide provider handles. secondary is None when Drive credentials are absent."""

    primary: StorageProvider
    secondary: StorageProvider | None = None
    threshold: int = DRIVE_THRESHOLD_BYTES


@dataclass(frozen=True)
class TierOutcome:
    """Result of one tier attempt: exactly one of result / error is set."""

    storage_type: StorageType
    result: UploadResult | None = None
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class StorageRouter:
    def __init__(self, config: ProviderConfig) -> None:
        if config.primary is None:
            raise ConfigurationError("Primary storage provider is required")
        self.config = config

    @property
    def secondary_configured(self) -> bool:
        return self.config.secondary is not None

    def _provider(self, storage_type: StorageType) -> StorageProvider | None:
        if storage_type == StorageType.SECONDARY:
            return self.config.secondary
        return self.config.primary

    def plan(self, size_bytes: int) -> list[StorageType]:
        """Tiers to try, in order, for a file of this size."""
        if size_bytes >= self.config.threshold and self.secondary_configured:
            return [StorageType.SECONDARY, StorageType.PRIMARY]
        return [StorageType.PRIMARY]

    def try_tier(self, storage_type: StorageType, request: UploadRequest) -> TierOutcome:
        """Upload on one provider; provider errors come back in the outcome instead of raising."""
        provider = self._provider(storage_type)
        started = time.monotonic()
        try:
            result = provider.upload(request)
        except StorageError as e:
            return TierOutcome(storage_type, error=e)
        except Exception as e:
            return TierOutcome(storage_type, error=StorageError(str(e)))
        log_storage_event(
            "uploaded",
            owner_id=request.owner_id,
            storage_type=storage_type.value,
            file_name=request.file_name,
            size_bytes=request.size_bytes,
            file_id=result.file_id,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return TierOutcome(storage_type, result=result)

    def upload(self, request: UploadRequest) -> UploadResult:
        """Store the file and return where it landed. Raises PrimaryUploadError when no tier succeeds."""
        if request.size_bytes <= 0 or not request.file_bytes:
            raise InvalidUploadError("File is empty", {"file_name": request.file_name})
        if not (request.owner_id and request.owner_id.strip()):
            raise InvalidUploadError("owner_id is required", {"file_name": request.file_name})

        tiers = self.plan(request.size_bytes)
        if request.size_bytes >= self.config.threshold and not self.secondary_configured:
            logger.warning(
                "File %s >= %d MB but Google Drive is not configured, using Supabase",
                request.file_name,
                self.config.threshold // (1024 * 1024),
            )
        log_storage_event(
            "routed",
            owner_id=request.owner_id,
            storage_type=tiers[0].value,
            file_name=request.file_name,
            size_bytes=request.size_bytes,
        )

        outcome: TierOutcome | None = None
        secondary_error: StorageError | None = None
        for storage_type in tiers:
            outcome = self.try_tier(storage_type, request)
            if outcome.ok:
                return outcome.result
            if storage_type == StorageType.SECONDARY:
                secondary_error = outcome.error
                log_storage_event(
                    "fallback",
                    owner_id=request.owner_id,
                    storage_type=storage_type.value,
                    file_name=request.file_name,
                    error=str(outcome.error),
                )

        log_storage_event(
            "upload_failed",
            owner_id=request.owner_id,
            storage_type=outcome.storage_type.value,
            file_name=request.file_name,
            error=str(outcome.error),
        )
        primary_error = outcome.error
        if secondary_error is None:
            if isinstance(primary_error, PrimaryUploadError):
                raise primary_error
            raise PrimaryUploadError(f"Upload failed: {primary_error}", primary_error.details) from primary_error
        # Both tiers failed: the Drive error is the cause, the Supabase error is the message.
        raise PrimaryUploadError(
            primary_error.message,
            {**primary_error.details, "secondary_error": str(secondary_error)},
        ) from secondary_error

    def _resolve(
        self, file_url: str, storage_type: StorageType, file_id: str | None
    ) -> tuple[StorageProvider | None, str | None]:
        provider = self._provider(storage_type)
        if provider is None:
            return None, None
        return provider, file_id or provider.object_id_from_url(file_url)

    def delete(self, file_url: str, storage_type: StorageType, file_id: str | None = None) -> None:
        """Best-effort removal of the backing object. Never raises: record deletion must not be blocked."""
        provider, object_id = self._resolve(file_url, storage_type, file_id)
        if provider is None:
            log_storage_event("delete_skipped", storage_type=storage_type.value, error="provider not configured")
            return
        if not object_id:
            log_storage_event("delete_skipped", storage_type=storage_type.value, error=f"unparsable URL: {file_url}")
            return
        try:
            provider.delete(object_id)
        except Exception as e:
            log_storage_event("delete_failed", storage_type=storage_type.value, file_id=object_id, error=str(e))
            return
        log_storage_event("deleted", storage_type=storage_type.value, file_id=object_id)

    def exists(self, file_url: str, storage_type: StorageType, file_id: str | None = None) -> bool | None:
        """True/False when the object can be looked up; None if the provider or id is unavailable."""
        provider, object_id = self._resolve(file_url, storage_type, file_id)
        if provider is None or not object_id:
            return None
        try:
            return provider.exists(object_id)
        except Exception as e:
            log_storage_event("lookup_failed", storage_type=storage_type.value, file_id=object_id, error=str(e))
            return None


def build_storage_router(settings: Settings) -> StorageRouter:
    """Supabase is mandatory (ConfigurationError otherwise); Drive is attached only when configured."""
    primary = SupabaseStorageProvider.from_settings(settings)
    return StorageRouter(ProviderConfig(primary=primary, secondary=build_secondary_provider(settings)))


_ROUTER: StorageRouter | None = None


def get_storage_router() -> StorageRouter:
    """Return the process-wide storage router. Built on first use, cached per process."""
    global _ROUTER
    if _ROUTER is None:
        _ROUTER = build_storage_router(get_settings())
    return _ROUTER
