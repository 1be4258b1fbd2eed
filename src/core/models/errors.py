"""Domain errors of the discovery image service.

Infrastructure code raises these `from` the botocore/transport exception
it caught; handlers turn them into responses via `ResponseBuilder`.
"""

from typing import TYPE_CHECKING, Any

from core.utils.constants import (
    ERROR_CODE_INTERNAL_ERROR,
    ERROR_CODE_INVALID_IMAGE,
    ERROR_CODE_METADATA_READ_FAILED,
    ERROR_CODE_METADATA_WRITE_FAILED,
    ERROR_CODE_OBJECT_NOT_FOUND,
    ERROR_CODE_PARTIAL_BATCH_FAILURE,
    ERROR_CODE_RESOURCE_NOT_FOUND,
    ERROR_CODE_STORAGE_UNAVAILABLE,
    ERROR_CODE_VALIDATION_FAILED,
)

if TYPE_CHECKING:
    from core.models.batch import BatchResult


class ImageServiceError(Exception):
    """
    Base exception for all image service errors.

    `message` is safe to show to API clients. `error_code` is a stable
    machine-readable code; subclasses provide a `default_code` and callers
    may pass a more specific one. `details` carries structured context.
    """

    default_code: str = ERROR_CODE_INTERNAL_ERROR

    message: str
    error_code: str
    details: dict[str, Any]

    def __init__(
        self,
        *,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

        super().__init__(self.message)


class ValidationError(ImageServiceError):
    """Malformed request that passed schema validation."""

    default_code = ERROR_CODE_VALIDATION_FAILED


class InvalidImageError(ValidationError):
    """An image payload failed size or type validation.

    `details["index"]` names the offending payload's position in its batch.
    """

    default_code = ERROR_CODE_INVALID_IMAGE


class NotFoundError(ImageServiceError):
    default_code = ERROR_CODE_RESOURCE_NOT_FOUND


class ObjectNotFoundError(NotFoundError):
    """Object storage itself reported that a key does not exist."""

    default_code = ERROR_CODE_OBJECT_NOT_FOUND


class StorageUnavailableError(ImageServiceError):
    """Transport or auth failure talking to object storage. Never retried."""

    default_code = ERROR_CODE_STORAGE_UNAVAILABLE


class MetadataWriteFailedError(ImageServiceError):
    default_code = ERROR_CODE_METADATA_WRITE_FAILED


class MetadataReadFailedError(ImageServiceError):
    default_code = ERROR_CODE_METADATA_READ_FAILED


class PartialBatchFailureError(ImageServiceError):
    """Some items of a best-effort batch failed.

    The full per-item outcome is available on `result`; the message is the
    message of the first failed item.
    """

    default_code = ERROR_CODE_PARTIAL_BATCH_FAILURE

    result: "BatchResult[Any]"

    def __init__(
        self,
        *,
        result: "BatchResult[Any]",
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        failed = result.failed
        message = failed[0].message if failed else "Batch operation partially failed"

        self.result = result

        super().__init__(
            message=message,
            error_code=error_code,
            details={
                "failed_count": len(failed),
                "succeeded_count": len(result.succeeded),
                **(details or {}),
            },
        )
