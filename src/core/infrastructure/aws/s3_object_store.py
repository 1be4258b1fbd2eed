"""S3-backed implementation of ObjectStore."""

from collections.abc import Callable
from datetime import datetime

from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

from core.infrastructure.adapters.s3_adapter import S3Adapter, S3AdapterProtocol
from core.models.errors import ObjectNotFoundError, StorageUnavailableError
from core.models.image import SignedURL
from core.repositories.storage_repository import ObjectStore
from core.utils.constants import (
    ERROR_CODE_IMAGE_DELETE_FAILED,
    ERROR_CODE_IMAGE_DOWNLOAD_FAILED,
    ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED,
    ERROR_CODE_IMAGE_UPLOAD_FAILED,
)
from core.utils.time import utc_now

logger = Logger(UTC=True)

_MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3ObjectStore(ObjectStore):
    """Object storage backed by Amazon S3 or any S3-compatible service."""

    def __init__(
        self,
        adapter: S3AdapterProtocol | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Create storage using the provided S3 adapter."""
        self._s3: S3AdapterProtocol = adapter or S3Adapter()
        self._clock = clock

    def put(
        self,
        *,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        """Upload image bytes to S3 under `key`."""
        logger.debug(
            "Uploading object",
            extra={"key": key, "size": len(data), "content_type": content_type},
        )

        try:
            self._s3.put_object(
                key=key,
                body=data,
                content_type=content_type,
                metadata=metadata,
            )
            logger.info("Object uploaded", extra={"key": key})

        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 upload failed", extra={"key": key, "error": str(exc)})
            raise StorageUnavailableError(
                message="Unable to upload image at this time",
                error_code=ERROR_CODE_IMAGE_UPLOAD_FAILED,
                details={"key": key},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error uploading object")
            raise StorageUnavailableError(
                message="Unable to upload image at this time",
                error_code=ERROR_CODE_IMAGE_UPLOAD_FAILED,
                details={"key": key},
            ) from exc

    def signed_get_url(self, *, key: str, expires_in: int) -> SignedURL:
        """Generate a pre-signed GET URL for `key` without checking existence."""
        logger.debug(
            "Generating pre-signed S3 URL",
            extra={"key": key, "expires_in": expires_in},
        )

        issued_at = self._clock().isoformat()

        try:
            url: str = self._s3.presign_get_object(key=key, expires_in=expires_in)

        except ClientError as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                raise ObjectNotFoundError(
                    message="Image not found",
                    details={"key": key},
                ) from exc

            logger.error("Failed to generate pre-signed URL", extra={"key": key})
            raise StorageUnavailableError(
                message="Unable to generate image access URL",
                error_code=ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED,
                details={"key": key},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error generating pre-signed URL")
            raise StorageUnavailableError(
                message="Unable to generate image access URL",
                error_code=ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED,
                details={"key": key},
            ) from exc

        return SignedURL(url=url, issued_at=issued_at, expires_in=expires_in)

    def get(self, *, key: str) -> tuple[bytes, str, int]:
        """Download image bytes directly from S3."""
        logger.debug("Downloading object", extra={"key": key})

        try:
            response = self._s3.get_object(key=key)
            body = response["Body"].read()
            content_type = response.get("ContentType", "application/octet-stream")
            content_length = response.get("ContentLength", len(body))

            logger.info(
                "Object downloaded",
                extra={"key": key, "size": content_length},
            )

            return body, content_type, content_length

        except ClientError as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                raise ObjectNotFoundError(
                    message="Image not found",
                    details={"key": key},
                ) from exc

            logger.error("S3 download failed", extra={"key": key})
            raise StorageUnavailableError(
                message="Unable to download image at this time",
                error_code=ERROR_CODE_IMAGE_DOWNLOAD_FAILED,
                details={"key": key},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error downloading object")
            raise StorageUnavailableError(
                message="Unable to download image at this time",
                error_code=ERROR_CODE_IMAGE_DOWNLOAD_FAILED,
                details={"key": key},
            ) from exc

    def delete(self, *, key: str) -> None:
        """Delete an object from S3; a missing key counts as deleted."""
        logger.debug("Deleting object", extra={"key": key})

        try:
            self._s3.delete_object(key=key)
            logger.info("Object deleted", extra={"key": key})

        except ClientError as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                logger.info("Object already absent", extra={"key": key})
                return

            logger.error("S3 deletion failed", extra={"key": key})
            raise StorageUnavailableError(
                message="Unable to delete image at this time",
                error_code=ERROR_CODE_IMAGE_DELETE_FAILED,
                details={"key": key},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error deleting object")
            raise StorageUnavailableError(
                message="Unable to delete image at this time",
                error_code=ERROR_CODE_IMAGE_DELETE_FAILED,
                details={"key": key},
            ) from exc
