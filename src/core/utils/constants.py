"""Global constants used throughout the application.

This module centralizes all magic numbers, string literals, and configuration
values that are used across multiple modules. Using constants prevents hardcoding
values and makes it easy to change them globally.
"""

from typing import Final

# ============================================================================
# Error Codes
# ============================================================================


# Validation Errors
ERROR_CODE_VALIDATION_FAILED = "VALIDATION_FAILED"
ERROR_CODE_INVALID_IMAGE = "INVALID_IMAGE"
ERROR_CODE_UNSUPPORTED_MIME_TYPE = "UNSUPPORTED_MIME_TYPE"
ERROR_CODE_FILE_SIZE_EXCEEDED = "FILE_SIZE_EXCEEDED"
ERROR_CODE_EMPTY_FILE = "EMPTY_FILE"

# Not Found Errors
ERROR_CODE_RESOURCE_NOT_FOUND = "NOT_FOUND"
ERROR_CODE_IMAGE_NOT_FOUND = "IMAGE_NOT_FOUND"
ERROR_CODE_OBJECT_NOT_FOUND = "OBJECT_NOT_FOUND"

# Storage Errors
ERROR_CODE_STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
ERROR_CODE_IMAGE_UPLOAD_FAILED = "IMAGE_UPLOAD_FAILED"
ERROR_CODE_IMAGE_DOWNLOAD_FAILED = "IMAGE_DOWNLOAD_FAILED"
ERROR_CODE_IMAGE_DELETE_FAILED = "IMAGE_DELETE_FAILED"
ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED = "PRESIGNED_URL_FAILED"

# Metadata / DynamoDB Errors
ERROR_CODE_METADATA_WRITE_FAILED = "METADATA_WRITE_FAILED"
ERROR_CODE_METADATA_READ_FAILED = "METADATA_READ_FAILED"
ERROR_CODE_METADATA_CREATE_FAILED = "METADATA_CREATE_FAILED"
ERROR_CODE_METADATA_UPDATE_FAILED = "METADATA_UPDATE_FAILED"
ERROR_CODE_METADATA_DELETE_FAILED = "METADATA_DELETE_FAILED"
ERROR_CODE_METADATA_FETCH_FAILED = "METADATA_FETCH_FAILED"
ERROR_CODE_METADATA_LIST_FAILED = "METADATA_LIST_FAILED"
ERROR_CODE_METADATA_INVALID_FORMAT = "METADATA_INVALID_FORMAT"
ERROR_CODE_METADATA_STALE_WRITE = "METADATA_STALE_WRITE"

# Batch Errors
ERROR_CODE_PARTIAL_BATCH_FAILURE = "PARTIAL_BATCH_FAILURE"

# Internal / Unexpected
ERROR_CODE_INTERNAL_ERROR = "INTERNAL_ERROR"


# ============================================================================
# Image Upload Constraints
# ============================================================================

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB in bytes

# Extension stored in the object key for each accepted content type
MIME_TYPE_EXTENSION_MAP: Final[dict[str, str]] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/heic": "heic",
    "image/heif": "heif",
}

MIME_TYPE_ALIASES: Final[dict[str, str]] = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}

ALLOWED_MIME_TYPES: Final[frozenset[str]] = frozenset(MIME_TYPE_EXTENSION_MAP.keys())

GENERIC_CONTENT_TYPES: Final[frozenset[str]] = frozenset(
    {"", "application/octet-stream", "binary/octet-stream"}
)

MAX_IMAGES_PER_REQUEST = 20

# ============================================================================
# Object Keys
# ============================================================================

OBJECT_KEY_TEMPLATE = "users/{owner_id}/discoveries/{discovery_id}/{timestamp}_{suffix}.{ext}"
OBJECT_KEY_PREFIX_TEMPLATE = "users/{owner_id}/discoveries/{discovery_id}/"
OBJECT_KEY_SUFFIX_LENGTH = 12
IMAGE_ID_PREFIX = "img_"

# Error detail naming object keys still referenced after a failed attach
RETAINED_KEYS_DETAIL = "retained_keys"

ID_PATTERN = r"^[a-zA-Z0-9_-]+$"

# ============================================================================
# Signed URLs
# ============================================================================

DEFAULT_SIGNED_URL_TTL_SECONDS = 3600  # 1 hour
MIN_SIGNED_URL_TTL_SECONDS = 60
MAX_SIGNED_URL_TTL_SECONDS = 7 * 24 * 3600  # SigV4 presign ceiling

# ============================================================================
# Concurrency
# ============================================================================

DEFAULT_MAX_IN_FLIGHT = 8
MAX_IN_FLIGHT_CEILING = 16

# ============================================================================
# Metadata Table
# ============================================================================

DISCOVERY_ORDER_INDEX = "discovery-order-index"

# ============================================================================
# API Gateway Configuration
# ============================================================================

CORS_ORIGIN = "*"
CORS_METHODS = "GET,POST,PUT,DELETE,OPTIONS"
CORS_HEADERS = "Content-Type,Authorization,X-Api-Key"
EXPOSE_HEADERS = "Content-Type,Content-Length"
DEFAULT_CONTENT_TYPE = "application/json"

# ============================================================================
# Environment Variable Names
# ============================================================================

ENV_AWS_ENDPOINT_URL = "AWS_ENDPOINT_URL"
ENV_AWS_REGION = "AWS_REGION"
ENV_IMAGE_S3_BUCKET_NAME = "IMAGE_S3_BUCKET_NAME"
ENV_DISCOVERY_IMAGES_TABLE_NAME = "DISCOVERY_IMAGES_TABLE_NAME"
ENV_SIGNED_URL_TTL_SECONDS = "SIGNED_URL_TTL_SECONDS"
ENV_STORAGE_MAX_IN_FLIGHT = "STORAGE_MAX_IN_FLIGHT"

# ============================================================================
# Helper Functions
# ============================================================================


def get_max_file_size_mb() -> int:
    """Get maximum file size in megabytes."""
    return MAX_FILE_SIZE // (1024 * 1024)


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted file size string
    """
    size: float = float(size_bytes)

    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0

    return f"{size:.1f} TB"
