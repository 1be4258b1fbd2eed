"""Business logic for creating a discovery's images.

Uploads the image bytes through the upload pipeline, then attaches one
metadata row per object key. Bytes always land before any row references
them; if attaching fails the freshly uploaded objects are removed again,
except those a leftover row still references.
"""

from collections.abc import Sequence

from aws_lambda_powertools import Logger

from core.models.errors import ImageServiceError
from core.models.image import ImagePayload, ImageRecord
from core.services.wiring import ImageComponents, build_components
from core.utils.constants import RETAINED_KEYS_DETAIL

logger = Logger(UTC=True)


class CreateWithImagesService:
    """Application service responsible for attaching new images to a discovery."""

    def __init__(self, components: ImageComponents | None = None) -> None:
        components = components or build_components()
        self.pipeline = components.pipeline
        self.records = components.records

    def create_with_images(
        self,
        *,
        user_id: str,
        discovery_id: str,
        payloads: Sequence[ImagePayload],
    ) -> list[ImageRecord]:
        """Upload payloads and attach them after the discovery's existing images.

        Raises:
            InvalidImageError: If any payload is invalid (nothing uploaded)
            StorageUnavailableError: If an upload fails (batch rolled back)
            MetadataReadFailedError: If the current order cannot be read
            MetadataWriteFailedError: If a row cannot be written
        """
        logger.debug(
            "Creating discovery images",
            extra={"discovery_id": discovery_id, "count": len(payloads)},
        )

        # Step 1: Upload bytes (validated first, all-or-nothing)
        keys = self.pipeline.upload(payloads, owner_id=user_id, discovery_id=discovery_id)

        # Step 2: Attach rows; roll back storage if that fails
        try:
            records = self.records.attach(
                discovery_id,
                keys,
                exif_data=[payload.exif_data for payload in payloads],
            )
        except ImageServiceError as exc:
            # Objects still referenced by a row that survived rollback stay
            retained = set(exc.details.get(RETAINED_KEYS_DETAIL, ()))
            orphaned = [key for key in keys if key not in retained]

            logger.warning(
                "Attaching images failed; removing uploaded objects",
                extra={
                    "discovery_id": discovery_id,
                    "count": len(orphaned),
                    "retained": len(retained),
                },
            )
            self.pipeline.discard(orphaned)
            raise

        return records
