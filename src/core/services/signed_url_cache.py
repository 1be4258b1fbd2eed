"""Signed URL caching for image records.

Each image row caches a pre-signed GET URL next to its durable object key.
Reads reuse the cached URL while it is inside the TTL window and regenerate
it (writing the new one back) once it has gone stale.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from aws_lambda_powertools import Logger

from core.models.batch import BatchResult
from core.models.errors import ImageServiceError
from core.models.image import ImageRecord, SignedURL
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ObjectStore
from core.utils.concurrency import fan_out_settled
from core.utils.constants import DEFAULT_MAX_IN_FLIGHT, DEFAULT_SIGNED_URL_TTL_SECONDS
from core.utils.time import parse_iso, utc_now

logger = Logger(UTC=True)


class SignedUrlCacheManager:
    """Decides whether a cached URL is usable and refreshes it when not."""

    def __init__(
        self,
        storage: ObjectStore,
        metadata: ImageMetadataRepository,
        *,
        ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.storage = storage
        self.metadata = metadata
        self.ttl_seconds = ttl_seconds
        self.max_in_flight = max_in_flight
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)

    def is_stale(self, record: ImageRecord, now: datetime | None = None) -> bool:
        """Return True if the record's cached URL must be regenerated.

        The issuance reference is `url_issued_at`, falling back to
        `created_at` for rows cached before it was tracked. A URL is never
        considered valid at or past issuance + TTL.
        """
        if not record.image_url:
            return True

        issued_at = record.url_issued_at or record.created_at
        try:
            issued = parse_iso(issued_at)
        except ValueError:
            logger.warning(
                "Unparseable URL issuance timestamp",
                extra={"image_id": record.image_id, "issued_at": issued_at},
            )
            return True

        return (now or self._clock()) - issued >= self.ttl

    def issue(self, key: str) -> SignedURL | None:
        """Issue an initial URL for a new row; None if signing fails."""
        try:
            return self.storage.signed_get_url(key=key, expires_in=self.ttl_seconds)
        except ImageServiceError as exc:
            logger.warning(
                "Could not issue initial image URL",
                extra={"key": key, "error_code": exc.error_code},
            )
            return None

    def resolve(self, record: ImageRecord) -> ImageRecord:
        """Return the record with a usable signed URL.

        Fresh records are returned unchanged without any network call.

        Raises:
            ObjectNotFoundError: If storage reports the object missing
            StorageUnavailableError: If a new URL cannot be generated
        """
        if not self.is_stale(record):
            return record

        logger.debug(
            "Refreshing stale image URL",
            extra={"image_id": record.image_id, "key": record.image_key},
        )

        signed = self.storage.signed_get_url(key=record.image_key, expires_in=self.ttl_seconds)
        refreshed = record.with_signed_url(signed)

        # Cache write-back is an optimisation; a failure only means the next read refreshes again
        try:
            self.metadata.update_cached_url(
                image_id=record.image_id,
                image_url=signed.url,
                url_issued_at=signed.issued_at,
            )
        except ImageServiceError as exc:
            logger.warning(
                "Failed to cache refreshed image URL",
                extra={"image_id": record.image_id, "error_code": exc.error_code},
            )

        return refreshed

    def resolve_many(self, records: Sequence[ImageRecord]) -> BatchResult[ImageRecord]:
        """Resolve records concurrently; one failure does not affect the others.

        Outcomes are returned in the order of `records`.
        """
        result = fan_out_settled(
            self.resolve,
            records,
            max_workers=self.max_in_flight,
            item_id=lambda record: record.image_id,
        )

        if result.failed:
            logger.warning(
                "Some image URLs could not be resolved",
                extra={
                    "failed": len(result.failed),
                    "resolved": len(result.succeeded),
                },
            )

        return result
