"""Image upload pipeline.

Validates a batch of raw image payloads, derives a unique object key for
each and uploads them to object storage. Metadata is not touched here;
the returned keys are handed to the image record repository.
"""

import uuid
from collections.abc import Sequence

from aws_lambda_powertools import Logger

from core.models.errors import InvalidImageError
from core.models.image import ImagePayload, ObjectKey
from core.repositories.storage_repository import ObjectStore
from core.utils.concurrency import fan_out
from core.utils.constants import (
    ALLOWED_MIME_TYPES,
    DEFAULT_MAX_IN_FLIGHT,
    ERROR_CODE_EMPTY_FILE,
    ERROR_CODE_FILE_SIZE_EXCEEDED,
    ERROR_CODE_UNSUPPORTED_MIME_TYPE,
    MAX_FILE_SIZE,
    MIME_TYPE_EXTENSION_MAP,
    OBJECT_KEY_PREFIX_TEMPLATE,
    OBJECT_KEY_SUFFIX_LENGTH,
    OBJECT_KEY_TEMPLATE,
    format_file_size,
    get_max_file_size_mb,
)
from core.utils.mime import normalize_content_type
from core.utils.time import epoch_millis, utc_now_iso

logger = Logger(UTC=True)


def discovery_key_prefix(owner_id: str, discovery_id: str) -> str:
    """Return the key prefix shared by every object of a discovery."""
    return OBJECT_KEY_PREFIX_TEMPLATE.format(owner_id=owner_id, discovery_id=discovery_id)


def generate_object_key(owner_id: str, discovery_id: str, content_type: str) -> ObjectKey:
    """Generate a unique object key for one image.

    Format: users/{owner}/discoveries/{discovery}/{epoch_ms}_{random}.{ext}
    """
    return OBJECT_KEY_TEMPLATE.format(
        owner_id=owner_id,
        discovery_id=discovery_id,
        timestamp=epoch_millis(),
        suffix=uuid.uuid4().hex[:OBJECT_KEY_SUFFIX_LENGTH],
        ext=MIME_TYPE_EXTENSION_MAP.get(content_type, "bin"),
    )


def validate_payload(payload: ImagePayload, *, index: int) -> str:
    """Validate one payload and return its canonical content type.

    Raises:
        InvalidImageError: If the payload is empty, too large or not a supported image
    """
    size = len(payload.data)

    if size == 0:
        raise InvalidImageError(
            message=f"Image {index + 1} is empty",
            error_code=ERROR_CODE_EMPTY_FILE,
            details={"index": index, "filename": payload.filename},
        )

    if size > MAX_FILE_SIZE:
        raise InvalidImageError(
            message=(
                f"Image {index + 1} is {format_file_size(size)}; "
                f"the limit is {get_max_file_size_mb()}MB"
            ),
            error_code=ERROR_CODE_FILE_SIZE_EXCEEDED,
            details={"index": index, "filename": payload.filename, "size": size},
        )

    try:
        content_type = normalize_content_type(payload.content_type, payload.data)
    except ValueError:
        content_type = payload.content_type or "unknown"

    if content_type not in ALLOWED_MIME_TYPES:
        raise InvalidImageError(
            message=f"Image {index + 1} must be JPEG, PNG or HEIC/HEIF",
            error_code=ERROR_CODE_UNSUPPORTED_MIME_TYPE,
            details={"index": index, "filename": payload.filename, "mime_type": content_type},
        )

    return content_type


def validate_payloads(payloads: Sequence[ImagePayload]) -> list[str]:
    """Validate every payload of a batch, returning canonical content types.

    Raises:
        InvalidImageError: For the first invalid payload, naming its index
    """
    return [validate_payload(payload, index=index) for index, payload in enumerate(payloads)]


class ImageUploadPipeline:
    """Uploads a batch of images all-or-nothing.

    This pipeline orchestrates:
    - Validation of every payload before any network call
    - Key generation under the owner/discovery prefix
    - Concurrent uploads to object storage
    - Best-effort removal of the batch's objects if any upload fails
    """

    def __init__(
        self,
        storage: ObjectStore,
        *,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
    ) -> None:
        self.storage = storage
        self.max_in_flight = max_in_flight

    def upload(
        self,
        payloads: Sequence[ImagePayload],
        *,
        owner_id: str,
        discovery_id: str,
    ) -> list[ObjectKey]:
        """Upload payloads and return their object keys in input order.

        Args:
            payloads: Raw images in display order
            owner_id: Owning user
            discovery_id: Owning discovery

        Returns:
            One object key per payload, same order as `payloads`

        Raises:
            InvalidImageError: If any payload fails validation (nothing uploaded)
            StorageUnavailableError: If any upload fails (the batch is rolled back)
        """
        if not payloads:
            return []

        logger.debug(
            "Starting image batch upload",
            extra={"discovery_id": discovery_id, "count": len(payloads)},
        )

        # Step 1: Validate the whole batch before touching storage
        content_types = validate_payloads(payloads)

        # Step 2: Derive keys in input order
        keys = [
            generate_object_key(owner_id, discovery_id, content_type)
            for content_type in content_types
        ]
        uploaded_at = utc_now_iso()

        jobs = [
            (key, payload, content_type)
            for key, payload, content_type in zip(keys, payloads, content_types)
        ]

        def put(job: tuple[ObjectKey, ImagePayload, str]) -> ObjectKey:
            key, payload, content_type = job
            self.storage.put(
                key=key,
                data=payload.data,
                content_type=content_type,
                metadata={
                    "owner_id": owner_id,
                    "discovery_id": discovery_id,
                    "original_name": payload.filename or "",
                    "uploaded_at": uploaded_at,
                },
            )
            return key

        # Step 3: Upload concurrently and wait for every call
        outcomes = fan_out(put, jobs, max_workers=self.max_in_flight)
        errors = [error for _, error in outcomes if error is not None]

        if errors:
            # Step 4: Roll back the objects that did land
            written = [value for value, error in outcomes if error is None and value]
            self.discard(written)

            logger.error(
                "Image batch upload failed",
                extra={
                    "discovery_id": discovery_id,
                    "failed": len(errors),
                    "rolled_back": len(written),
                },
            )
            raise errors[0]

        logger.info(
            "Image batch uploaded",
            extra={"discovery_id": discovery_id, "count": len(keys)},
        )
        return keys

    def discard(self, keys: Sequence[ObjectKey]) -> None:
        """Best-effort removal of objects written by a failed batch."""

        def remove(key: ObjectKey) -> None:
            self.storage.delete(key=key)

        for key, (_, error) in zip(keys, fan_out(remove, keys, max_workers=self.max_in_flight)):
            if error is not None:
                logger.warning(
                    "Failed to clean up uploaded image after batch failure",
                    extra={"key": key},
                )
