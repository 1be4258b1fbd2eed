"""Image record repository.

Owns the mapping between a discovery and its ordered images, keeping the
metadata table and object storage consistent:

- object bytes are written before any row references them
- rows are appended after the discovery's current highest order
- reads pass every row through the signed URL cache
- deletion removes bytes first and keeps the row if that fails
"""

import uuid
from collections.abc import Sequence
from typing import Any

from aws_lambda_powertools import Logger

from core.models.batch import BatchResult
from core.models.errors import (
    ImageServiceError,
    NotFoundError,
    PartialBatchFailureError,
    ValidationError,
)
from core.models.image import ImageOrderUpdate, ImageRecord, ObjectKey
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ObjectStore
from core.services.signed_url_cache import SignedUrlCacheManager
from core.utils.concurrency import fan_out, fan_out_settled
from core.utils.constants import (
    DEFAULT_MAX_IN_FLIGHT,
    ERROR_CODE_IMAGE_NOT_FOUND,
    IMAGE_ID_PREFIX,
    RETAINED_KEYS_DETAIL,
)
from core.utils.time import utc_now_iso

logger = Logger(UTC=True)


def generate_image_id() -> str:
    """Generate a unique image identifier."""
    return f"{IMAGE_ID_PREFIX}{uuid.uuid4().hex}"


class ImageRecordRepository:
    """Discovery image rows plus the object storage they reference."""

    def __init__(
        self,
        metadata: ImageMetadataRepository,
        storage: ObjectStore,
        cache: SignedUrlCacheManager,
        *,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
    ) -> None:
        self.metadata = metadata
        self.storage = storage
        self.cache = cache
        self.max_in_flight = max_in_flight

    def attach(
        self,
        discovery_id: str,
        keys: Sequence[ObjectKey],
        *,
        exif_data: Sequence[dict[str, Any] | None] | None = None,
    ) -> list[ImageRecord]:
        """Create one row per key, appended after the existing images.

        Orders continue from the discovery's current maximum; existing rows
        are never renumbered. Each row is stored with an initially issued
        signed URL when signing succeeds.

        On an insert failure the rows already inserted are removed again.
        Keys whose rows could not be removed are listed in the raised
        error's `details["retained_keys"]`; their objects must be kept.

        Raises:
            ValidationError: If `exif_data` does not match `keys`
            MetadataReadFailedError: If the current order cannot be read
            MetadataWriteFailedError: If a row cannot be inserted
        """
        if not keys:
            return []

        if exif_data is not None and len(exif_data) != len(keys):
            raise ValidationError(
                message="EXIF data must be given for every image or not at all",
                details={"keys": len(keys), "exif_data": len(exif_data)},
            )

        current_max = self.metadata.max_order(discovery_id=discovery_id)
        start = 0 if current_max is None else current_max + 1
        created_at = utc_now_iso()

        records = [
            ImageRecord(
                image_id=generate_image_id(),
                discovery_id=discovery_id,
                image_key=key,
                image_order=start + position,
                exif_data=exif_data[position] if exif_data else None,
                created_at=created_at,
            )
            for position, key in enumerate(keys)
        ]

        # Rows carry an initial URL so the first read needs no signing call
        def insert(record: ImageRecord) -> ImageRecord:
            signed = self.cache.issue(record.image_key)
            if signed:
                record = record.with_signed_url(signed)

            self.metadata.insert_record(record=record)
            return record

        outcomes = fan_out(insert, records, max_workers=self.max_in_flight)
        errors = [error for _, error in outcomes if error is not None]

        if errors:
            inserted = [value for value, error in outcomes if error is None and value]
            retained = self._discard_rows(inserted)

            logger.error(
                "Failed to attach images",
                extra={
                    "discovery_id": discovery_id,
                    "failed": len(errors),
                    "discarded": len(inserted) - len(retained),
                    "retained": len(retained),
                },
            )

            error = errors[0]
            if isinstance(error, ImageServiceError):
                # Rows that survived rollback still reference their objects
                error.details[RETAINED_KEYS_DETAIL] = [record.image_key for record in retained]
            raise error

        records = [value for value, _ in outcomes if value]

        logger.info(
            "Images attached",
            extra={
                "discovery_id": discovery_id,
                "count": len(records),
                "first_order": start,
            },
        )
        return records

    def list_for_discovery(self, discovery_id: str) -> BatchResult[ImageRecord]:
        """Return the discovery's images by `image_order`, each with a usable URL.

        Records whose URL cannot be resolved are reported as failures
        instead of failing the whole listing.

        Raises:
            MetadataReadFailedError: If the rows cannot be read
        """
        records = self.metadata.list_for_discovery(discovery_id=discovery_id)
        return self.cache.resolve_many(records)

    def reorder(
        self,
        discovery_id: str,
        new_order: Sequence[ImageOrderUpdate],
    ) -> BatchResult[str]:
        """Apply new display orders to images of a discovery.

        Updates are independent; no atomicity is guaranteed across them.

        Returns:
            Per-update outcomes carrying the updated image ids

        Raises:
            ValidationError: If an image id or an order appears twice, or an
                order is held by an image not in the request
            MetadataReadFailedError: If the current rows cannot be read
            PartialBatchFailureError: If any update failed (carries the full result)
        """
        image_ids = [update.image_id for update in new_order]
        orders = [update.order for update in new_order]

        if len(set(image_ids)) != len(image_ids):
            raise ValidationError(
                message="Each image may appear only once in a reorder request",
                details={"discovery_id": discovery_id},
            )

        if len(set(orders)) != len(orders):
            raise ValidationError(
                message="Image orders must be unique within a discovery",
                details={"discovery_id": discovery_id},
            )

        # Images left out of the request keep their positions
        held = {
            record.image_order: record.image_id
            for record in self.metadata.list_for_discovery(discovery_id=discovery_id)
            if record.image_id not in image_ids
        }
        taken = [update for update in new_order if update.order in held]
        if taken:
            raise ValidationError(
                message="Image orders must be unique within a discovery",
                details={
                    "discovery_id": discovery_id,
                    "conflicts": [
                        {"image_id": update.image_id, "order": update.order, "held_by": held[update.order]}
                        for update in taken
                    ],
                },
            )

        def update(change: ImageOrderUpdate) -> str:
            self.metadata.update_order(
                discovery_id=discovery_id,
                image_id=change.image_id,
                image_order=change.order,
            )
            return change.image_id

        result = fan_out_settled(
            update,
            new_order,
            max_workers=self.max_in_flight,
            item_id=lambda change: change.image_id,
        )

        if not result.ok:
            logger.warning(
                "Image reorder partially failed",
                extra={
                    "discovery_id": discovery_id,
                    "failed": len(result.failed),
                    "updated": len(result.succeeded),
                },
            )
            raise PartialBatchFailureError(result=result, details={"discovery_id": discovery_id})

        logger.info(
            "Images reordered",
            extra={"discovery_id": discovery_id, "count": len(result)},
        )
        return result

    def remove(self, image_id: str) -> ImageRecord:
        """Delete an image's bytes, then its row.

        If the storage delete fails the row is kept, so metadata never
        points at bytes that are gone.

        Returns:
            The removed record

        Raises:
            NotFoundError: If the image row does not exist
            StorageUnavailableError: If the object cannot be deleted (row kept)
            MetadataWriteFailedError: If the row cannot be deleted (bytes already gone)
        """
        record = self.metadata.fetch_record(image_id=image_id)

        if record is None:
            logger.warning("Image row not found", extra={"image_id": image_id})
            raise NotFoundError(
                message="Image not found",
                error_code=ERROR_CODE_IMAGE_NOT_FOUND,
                details={"image_id": image_id},
            )

        return self._remove_record(record)

    def remove_all_for_discovery(self, discovery_id: str) -> BatchResult[str]:
        """Remove every image of a discovery with the same per-image policy as `remove`.

        Returns:
            Per-image outcomes carrying the removed image ids

        Raises:
            MetadataReadFailedError: If the rows cannot be read
            PartialBatchFailureError: If any image could not be removed
        """
        records = self.metadata.list_for_discovery(discovery_id=discovery_id)

        def remove(record: ImageRecord) -> str:
            return self._remove_record(record).image_id

        result = fan_out_settled(
            remove,
            records,
            max_workers=self.max_in_flight,
            item_id=lambda record: record.image_id,
        )

        if not result.ok:
            logger.warning(
                "Discovery image cleanup partially failed",
                extra={
                    "discovery_id": discovery_id,
                    "failed": len(result.failed),
                    "removed": len(result.succeeded),
                },
            )
            raise PartialBatchFailureError(result=result, details={"discovery_id": discovery_id})

        logger.info(
            "Discovery images removed",
            extra={"discovery_id": discovery_id, "count": len(result)},
        )
        return result

    def _discard_rows(self, records: list[ImageRecord]) -> list[ImageRecord]:
        """Best-effort removal of rows inserted by a failed attach.

        Returns the records whose rows could not be removed.
        """
        retained: list[ImageRecord] = []
        for record in records:
            try:
                self.metadata.delete_record(image_id=record.image_id)
            except Exception:
                logger.warning(
                    "Failed to discard image row after attach failure",
                    extra={"image_id": record.image_id, "key": record.image_key},
                )
                retained.append(record)
        return retained

    def _remove_record(self, record: ImageRecord) -> ImageRecord:
        # Storage first: a failure here leaves the row intact
        try:
            self.storage.delete(key=record.image_key)
        except Exception:
            logger.exception(
                "Failed to delete image from storage; keeping metadata",
                extra={"image_id": record.image_id, "key": record.image_key},
            )
            raise

        try:
            self.metadata.delete_record(image_id=record.image_id)
        except Exception:
            logger.exception(
                "Failed to delete image metadata after storage delete",
                extra={"image_id": record.image_id, "key": record.image_key},
            )
            raise

        logger.info(
            "Image removed",
            extra={"image_id": record.image_id, "discovery_id": record.discovery_id},
        )
        return record
