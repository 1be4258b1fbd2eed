"""DynamoDB-backed implementation of ImageMetadataRepository."""

import json
from decimal import Decimal
from typing import Any

from aws_lambda_powertools import Logger
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from pydantic import ValidationError as PydanticValidationError

from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapter, DynamoDBAdapterProtocol
from core.models.errors import (
    MetadataReadFailedError,
    MetadataWriteFailedError,
    NotFoundError,
)
from core.models.image import ImageRecord
from core.repositories.metadata_repository import ImageMetadataRepository
from core.utils.constants import (
    DISCOVERY_ORDER_INDEX,
    ERROR_CODE_IMAGE_NOT_FOUND,
    ERROR_CODE_METADATA_CREATE_FAILED,
    ERROR_CODE_METADATA_DELETE_FAILED,
    ERROR_CODE_METADATA_FETCH_FAILED,
    ERROR_CODE_METADATA_INVALID_FORMAT,
    ERROR_CODE_METADATA_LIST_FAILED,
    ERROR_CODE_METADATA_STALE_WRITE,
    ERROR_CODE_METADATA_UPDATE_FAILED,
)

Item = dict[str, Any]

logger = Logger(UTC=True)

_CONDITION_FAILED = "ConditionalCheckFailedException"


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == _CONDITION_FAILED


def _to_dynamo(value: Any) -> Any:
    """Convert JSON-like data to DynamoDB-safe types (floats become Decimal)."""
    return json.loads(json.dumps(value), parse_float=Decimal)


def _from_dynamo(value: Any) -> Any:
    """Convert DynamoDB numbers back to int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


def record_to_item(record: ImageRecord) -> Item:
    """Serialize a record into a DynamoDB item, omitting null attributes."""
    item = {k: v for k, v in record.model_dump().items() if v is not None}

    if "exif_data" in item:
        item["exif_data"] = _to_dynamo(item["exif_data"])

    return item


def item_to_record(item: Item) -> ImageRecord:
    """Validate a DynamoDB item into a record.

    Raises:
        MetadataReadFailedError: If the item does not have the row shape
    """
    try:
        return ImageRecord.model_validate(_from_dynamo(item))
    except PydanticValidationError as exc:
        logger.error(
            "Invalid image row in metadata table",
            extra={"image_id": item.get("image_id"), "errors": exc.error_count()},
        )
        raise MetadataReadFailedError(
            message="Invalid image metadata format",
            error_code=ERROR_CODE_METADATA_INVALID_FORMAT,
            details={"image_id": item.get("image_id")},
        ) from exc


class DynamoDBImageRecords(ImageMetadataRepository):
    """DynamoDB-backed `discovery_images` table with error handling.

    Rows are keyed by `image_id`; the `discovery-order-index` GSI
    (`discovery_id` HASH, `image_order` RANGE) serves per-discovery reads.
    All boto3 errors are caught and translated into
    domain-specific errors with stable semantics.
    """

    def __init__(self, adapter: DynamoDBAdapterProtocol | None = None) -> None:
        """Initialize with DynamoDB adapter."""
        self._db: DynamoDBAdapterProtocol = adapter or DynamoDBAdapter()

    def insert_record(self, *, record: ImageRecord) -> None:
        logger.debug(
            "Creating image row",
            extra={"image_id": record.image_id, "discovery_id": record.discovery_id},
        )

        try:
            self._db.put_item(
                item=record_to_item(record),
                condition_expression="attribute_not_exists(image_id)",  # Partition key
            )
            logger.info(
                "Image row created",
                extra={"image_id": record.image_id, "discovery_id": record.discovery_id},
            )

        except ClientError as exc:
            logger.error(
                "DynamoDB put_item failed",
                extra={"image_id": record.image_id, "error": str(exc)},
            )
            raise MetadataWriteFailedError(
                message="Unable to save image metadata at this time",
                error_code=ERROR_CODE_METADATA_CREATE_FAILED,
                details={"image_id": record.image_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error creating image row")
            raise MetadataWriteFailedError(
                message="Unable to save image metadata at this time",
                error_code=ERROR_CODE_METADATA_CREATE_FAILED,
                details={"image_id": record.image_id},
            ) from exc

    def fetch_record(self, *, image_id: str) -> ImageRecord | None:
        logger.debug("Fetching image row", extra={"image_id": image_id})

        try:
            response = self._db.get_item(key={"image_id": image_id})

        except ClientError as exc:
            logger.error("DynamoDB get_item failed", extra={"image_id": image_id})
            raise MetadataReadFailedError(
                message="Unable to retrieve image metadata",
                error_code=ERROR_CODE_METADATA_FETCH_FAILED,
                details={"image_id": image_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error fetching image row")
            raise MetadataReadFailedError(
                message="Unable to retrieve image metadata",
                error_code=ERROR_CODE_METADATA_FETCH_FAILED,
                details={"image_id": image_id},
            ) from exc

        item = response.get("Item")
        if item is None:
            return None

        return item_to_record(item)

    def list_for_discovery(self, *, discovery_id: str) -> list[ImageRecord]:
        """List every image of a discovery.

        NOTE:
        - The GSI is read page by page until exhausted.
        - Results are re-sorted in memory so ties on `image_order` left by
          overlapping attaches (see `max_order`) still render deterministically.
        """
        logger.debug("Listing discovery images", extra={"discovery_id": discovery_id})

        query_kwargs: dict[str, Any] = {
            "IndexName": DISCOVERY_ORDER_INDEX,
            "KeyConditionExpression": Key("discovery_id").eq(discovery_id),
            "ScanIndexForward": True,
        }

        items: list[Item] = []
        last_evaluated_key: dict[str, Any] | None = None

        try:
            while True:
                if last_evaluated_key:
                    query_kwargs["ExclusiveStartKey"] = last_evaluated_key

                response = self._db.query(**query_kwargs)
                items.extend(response.get("Items", []))

                last_evaluated_key = response.get("LastEvaluatedKey")
                if not last_evaluated_key:
                    break

        except ClientError as exc:
            logger.error("DynamoDB query failed", extra={"discovery_id": discovery_id})
            raise MetadataReadFailedError(
                message="Unable to list images for this discovery",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"discovery_id": discovery_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error listing discovery images")
            raise MetadataReadFailedError(
                message="Unable to list images for this discovery",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"discovery_id": discovery_id},
            ) from exc

        records = sorted(
            (item_to_record(item) for item in items),
            key=lambda record: (record.image_order, record.created_at, record.image_id),
        )

        logger.info(
            "Discovery images listed",
            extra={"discovery_id": discovery_id, "count": len(records)},
        )
        return records

    def max_order(self, *, discovery_id: str) -> int | None:
        """Highest `image_order` of the discovery, or None if it has no images.

        NOTE:
        - GSI reads are eventually consistent, so a row inserted moments ago
          may not be seen yet; two attaches that overlap can start at the
          same order. Listing breaks such ties by `created_at`, `image_id`.
        """
        try:
            response = self._db.query(
                IndexName=DISCOVERY_ORDER_INDEX,
                KeyConditionExpression=Key("discovery_id").eq(discovery_id),
                ScanIndexForward=False,
                Limit=1,
            )

        except ClientError as exc:
            logger.error("DynamoDB max order query failed", extra={"discovery_id": discovery_id})
            raise MetadataReadFailedError(
                message="Unable to read image order for this discovery",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"discovery_id": discovery_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error reading max image order")
            raise MetadataReadFailedError(
                message="Unable to read image order for this discovery",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"discovery_id": discovery_id},
            ) from exc

        items = response.get("Items", [])
        if not items:
            return None

        return int(items[0]["image_order"])

    def update_order(self, *, discovery_id: str, image_id: str, image_order: int) -> None:
        logger.debug(
            "Updating image order",
            extra={"image_id": image_id, "image_order": image_order},
        )

        try:
            self._db.update_item(
                key={"image_id": image_id},
                UpdateExpression="SET image_order = :order",
                ConditionExpression="discovery_id = :discovery_id",
                ExpressionAttributeValues={
                    ":order": image_order,
                    ":discovery_id": discovery_id,
                },
            )

        except ClientError as exc:
            if _is_condition_failure(exc):
                raise NotFoundError(
                    message="Image not found in this discovery",
                    error_code=ERROR_CODE_IMAGE_NOT_FOUND,
                    details={"image_id": image_id, "discovery_id": discovery_id},
                ) from exc

            logger.error("DynamoDB update_item failed", extra={"image_id": image_id})
            raise MetadataWriteFailedError(
                message="Unable to update image order",
                error_code=ERROR_CODE_METADATA_UPDATE_FAILED,
                details={"image_id": image_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error updating image order")
            raise MetadataWriteFailedError(
                message="Unable to update image order",
                error_code=ERROR_CODE_METADATA_UPDATE_FAILED,
                details={"image_id": image_id},
            ) from exc

    def update_cached_url(self, *, image_id: str, image_url: str, url_issued_at: str) -> None:
        try:
            self._db.update_item(
                key={"image_id": image_id},
                UpdateExpression="SET image_url = :url, url_issued_at = :issued_at",
                ConditionExpression="attribute_exists(image_id)",
                ExpressionAttributeValues={
                    ":url": image_url,
                    ":issued_at": url_issued_at,
                },
            )

        except ClientError as exc:
            if _is_condition_failure(exc):
                raise MetadataWriteFailedError(
                    message="Image no longer exists",
                    error_code=ERROR_CODE_METADATA_STALE_WRITE,
                    details={"image_id": image_id},
                ) from exc

            raise MetadataWriteFailedError(
                message="Unable to cache image URL",
                error_code=ERROR_CODE_METADATA_UPDATE_FAILED,
                details={"image_id": image_id},
            ) from exc

        except Exception as exc:
            raise MetadataWriteFailedError(
                message="Unable to cache image URL",
                error_code=ERROR_CODE_METADATA_UPDATE_FAILED,
                details={"image_id": image_id},
            ) from exc

    def delete_record(self, *, image_id: str) -> None:
        logger.debug("Removing image row", extra={"image_id": image_id})

        try:
            self._db.delete_item(key={"image_id": image_id})
            logger.info("Image row removed", extra={"image_id": image_id})

        except ClientError as exc:
            logger.error("DynamoDB delete_item failed", extra={"image_id": image_id})
            raise MetadataWriteFailedError(
                message="Unable to delete image metadata",
                error_code=ERROR_CODE_METADATA_DELETE_FAILED,
                details={"image_id": image_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error removing image row")
            raise MetadataWriteFailedError(
                message="Unable to delete image metadata",
                error_code=ERROR_CODE_METADATA_DELETE_FAILED,
                details={"image_id": image_id},
            ) from exc
