"""
Pytest configuration and fixtures for discovery image tests.
Provides AWS mocking, the discovery_images table, the image bucket and
in-memory object/metadata stores for service-level tests.
"""

import base64
import os
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from core.models.errors import (
    MetadataWriteFailedError,
    NotFoundError,
    ObjectNotFoundError,
    StorageUnavailableError,
)
from core.models.image import ImageRecord, SignedURL
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ObjectStore
from core.services.wiring import ImageComponents, build_components
from core.utils.config import ServiceSettings
from core.utils.constants import DISCOVERY_ORDER_INDEX
from core.utils.time import utc_now

os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("IMAGE_S3_BUCKET_NAME", "discovery-images-test")
os.environ.setdefault("DISCOVERY_IMAGES_TABLE_NAME", "discovery_images")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "DiscoveryImages")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "discovery-images")

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)


# ---------------------------------------------------------------------------
# AWS (moto)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def aws_mock():
    with mock_aws():
        yield


@pytest.fixture(scope="function")
def dynamodb_resource(aws_mock):
    return boto3.resource("dynamodb", region_name=os.getenv("AWS_REGION"))


def _create_discovery_images_table(dynamodb_resource):
    """Helper to create the discovery_images table with its order GSI."""
    return dynamodb_resource.create_table(
        TableName=os.getenv("DISCOVERY_IMAGES_TABLE_NAME"),
        BillingMode="PAY_PER_REQUEST",
        KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "image_id", "AttributeType": "S"},
            {"AttributeName": "discovery_id", "AttributeType": "S"},
            {"AttributeName": "image_order", "AttributeType": "N"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": DISCOVERY_ORDER_INDEX,
                "KeySchema": [
                    {"AttributeName": "discovery_id", "KeyType": "HASH"},
                    {"AttributeName": "image_order", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
    )


@pytest.fixture(scope="function")
def dynamodb_table(dynamodb_resource):
    """
    Create the discovery_images table for one test.

    The table lives inside the function-scoped moto context, so it is
    discarded together with it.
    """
    table = _create_discovery_images_table(dynamodb_resource)
    table.wait_until_exists()
    return table


@pytest.fixture
def dynamodb_put_item(dynamodb_table) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """
    Helper to insert a single row.

    Usage:
        item = dynamodb_put_item({"image_id": "img_1", "discovery_id": "disc_1", ...})
    """

    def _put(item: dict[str, Any]) -> dict[str, Any]:
        dynamodb_table.put_item(Item=item)
        return item

    return _put


@pytest.fixture
def dynamodb_get_item(dynamodb_table) -> Callable[[str], dict[str, Any] | None]:
    def _get(image_id: str) -> dict[str, Any] | None:
        response: dict[str, Any] = dynamodb_table.get_item(Key={"image_id": image_id})
        return response.get("Item")

    return _get


@pytest.fixture(scope="function")
def s3_client(aws_mock):
    """S3 client for bucket operations."""
    return boto3.client("s3", region_name=os.getenv("AWS_REGION"))


@pytest.fixture(scope="function")
def s3_bucket(s3_client):
    """Create the image bucket for one test."""
    bucket_name = os.getenv("IMAGE_S3_BUCKET_NAME")

    try:
        s3_client.create_bucket(Bucket=bucket_name)
    except ClientError as e:
        if e.response["Error"]["Code"] != "BucketAlreadyOwnedByYou":
            raise

    return s3_client


@pytest.fixture
def s3_put_object(s3_bucket) -> Callable[..., dict[str, Any]]:
    """
    Helper to upload an object to S3.

    Usage:
        s3_put_object("users/u/discoveries/d/1_abc.jpg", image_bytes, "image/jpeg")
    """

    def _put(key: str, body: bytes, content_type: str = "application/octet-stream"):
        return s3_bucket.put_object(
            Bucket=os.getenv("IMAGE_S3_BUCKET_NAME"),
            Key=key,
            Body=body,
            ContentType=content_type,
        )

    return _put


@pytest.fixture
def s3_get_object(s3_bucket) -> Callable[[str], bytes]:
    def _get(key: str) -> bytes:
        response = s3_bucket.get_object(Bucket=os.getenv("IMAGE_S3_BUCKET_NAME"), Key=key)
        data: bytes = response["Body"].read()
        return data

    return _get


@pytest.fixture
def s3_object_keys(s3_bucket) -> Callable[[], list[str]]:
    """Helper listing every key currently in the bucket."""

    def _keys() -> list[str]:
        response = s3_bucket.list_objects_v2(Bucket=os.getenv("IMAGE_S3_BUCKET_NAME"))
        return sorted(obj["Key"] for obj in response.get("Contents", []))

    return _keys


@pytest.fixture
def aws_components(dynamodb_table, s3_bucket) -> ImageComponents:
    """Components wired to moto-backed S3 and DynamoDB."""
    return build_components(ServiceSettings.from_env())


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class InMemoryObjectStore(ObjectStore):
    """Dict-backed object store that records every call.

    `fail_put_keys`, `fail_delete_keys` and `missing_keys` hold key
    substrings that trigger the corresponding failure; `fail_put_after`
    rejects every put past that count.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self.objects: dict[str, tuple[bytes, str, dict[str, str]]] = {}
        self.clock = clock
        self.put_calls: list[str] = []
        self.sign_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.fail_put_keys: set[str] = set()
        self.fail_delete_keys: set[str] = set()
        self.missing_keys: set[str] = set()
        self.fail_put_after: int | None = None
        self._lock = threading.Lock()

    @staticmethod
    def _matches(key: str, patterns: set[str]) -> bool:
        return any(pattern in key for pattern in patterns)

    def put(self, *, key: str, data: bytes, content_type: str, metadata: dict[str, str]) -> None:
        with self._lock:
            self.put_calls.append(key)
            attempt = len(self.put_calls)

        if self._matches(key, self.fail_put_keys) or (
            self.fail_put_after is not None and attempt > self.fail_put_after
        ):
            raise StorageUnavailableError(message="Unable to upload image at this time")

        with self._lock:
            self.objects[key] = (data, content_type, dict(metadata))

    def signed_get_url(self, *, key: str, expires_in: int) -> SignedURL:
        with self._lock:
            self.sign_calls.append(key)
            count = len(self.sign_calls)

        if self._matches(key, self.missing_keys):
            raise ObjectNotFoundError(message="Image not found", details={"key": key})

        return SignedURL(
            url=f"https://signed.example/{key}?sig={count}",
            issued_at=self.clock().isoformat(),
            expires_in=expires_in,
        )

    def delete(self, *, key: str) -> None:
        with self._lock:
            self.delete_calls.append(key)

        if self._matches(key, self.fail_delete_keys):
            raise StorageUnavailableError(message="Unable to delete image at this time")

        with self._lock:
            self.objects.pop(key, None)

    def get(self, *, key: str) -> tuple[bytes, str, int]:
        if key not in self.objects:
            raise ObjectNotFoundError(message="Image not found", details={"key": key})

        data, content_type, _ = self.objects[key]
        return data, content_type, len(data)


class InMemoryImageRecords(ImageMetadataRepository):
    """Dict-backed `discovery_images` table.

    `fail_update_ids` and `fail_delete_ids` hold image ids whose writes are
    rejected; `fail_insert_after` rejects every insert past that count.
    """

    def __init__(self) -> None:
        self.rows: dict[str, ImageRecord] = {}
        self.fail_insert_after: int | None = None
        self.fail_update_ids: set[str] = set()
        self.fail_delete_ids: set[str] = set()
        self.fail_cache_writes = False
        self.cache_writes: list[str] = []
        self._inserts = 0
        self._lock = threading.Lock()

    def insert_record(self, *, record: ImageRecord) -> None:
        with self._lock:
            self._inserts += 1
            if self.fail_insert_after is not None and self._inserts > self.fail_insert_after:
                raise MetadataWriteFailedError(message="Unable to save image metadata at this time")
            self.rows[record.image_id] = record

    def fetch_record(self, *, image_id: str) -> ImageRecord | None:
        return self.rows.get(image_id)

    def list_for_discovery(self, *, discovery_id: str) -> list[ImageRecord]:
        return sorted(
            (row for row in self.rows.values() if row.discovery_id == discovery_id),
            key=lambda row: (row.image_order, row.created_at, row.image_id),
        )

    def max_order(self, *, discovery_id: str) -> int | None:
        orders = [row.image_order for row in self.list_for_discovery(discovery_id=discovery_id)]
        return max(orders) if orders else None

    def update_order(self, *, discovery_id: str, image_id: str, image_order: int) -> None:
        if image_id in self.fail_update_ids:
            raise MetadataWriteFailedError(message="Unable to update image order")

        with self._lock:
            row = self.rows.get(image_id)
            if row is None or row.discovery_id != discovery_id:
                raise NotFoundError(message="Image not found in this discovery")
            self.rows[image_id] = row.model_copy(update={"image_order": image_order})

    def update_cached_url(self, *, image_id: str, image_url: str, url_issued_at: str) -> None:
        if self.fail_cache_writes:
            raise MetadataWriteFailedError(message="Unable to cache image URL")

        with self._lock:
            self.cache_writes.append(image_id)
            row = self.rows.get(image_id)
            if row is None:
                raise MetadataWriteFailedError(message="Image no longer exists")
            self.rows[image_id] = row.model_copy(
                update={"image_url": image_url, "url_issued_at": url_issued_at}
            )

    def delete_record(self, *, image_id: str) -> None:
        if image_id in self.fail_delete_ids:
            raise MetadataWriteFailedError(message="Unable to delete image metadata")

        with self._lock:
            self.rows.pop(image_id, None)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def memory_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def memory_records() -> InMemoryImageRecords:
    return InMemoryImageRecords()


@pytest.fixture
def memory_components(memory_store, memory_records) -> ImageComponents:
    """Components wired to the in-memory stores."""
    return build_components(
        ServiceSettings(bucket_name="unused", table_name="unused"),
        storage=memory_store,
        metadata=memory_records,
    )


@pytest.fixture
def make_record() -> Callable[..., ImageRecord]:
    """
    Factory for image records.

    Usage:
        record = make_record("img_1", order=0, issued_at=FIXED_NOW - timedelta(minutes=5))
    """

    def _make(
        image_id: str,
        *,
        discovery_id: str = "disc_1",
        order: int = 0,
        key: str | None = None,
        url: str | None = "https://signed.example/cached",
        issued_at: datetime | None = None,
        created_at: datetime = FIXED_NOW - timedelta(days=1),
    ) -> ImageRecord:
        return ImageRecord(
            image_id=image_id,
            discovery_id=discovery_id,
            image_key=key or f"users/user_1/discoveries/{discovery_id}/{image_id}.png",
            image_url=url,
            image_order=order,
            created_at=created_at.isoformat(),
            url_issued_at=issued_at.isoformat() if issued_at else None,
        )

    return _make


@pytest.fixture
def sample_png_binary() -> bytes:
    """Sample binary image data (1x1 PNG)."""
    return PNG_BYTES


@pytest.fixture
def sample_jpeg_binary() -> bytes:
    """Minimal JPEG header bytes."""
    return b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


@pytest.fixture
def sample_heic_binary() -> bytes:
    """ISO-BMFF header with a HEIC brand."""
    return b"\x00\x00\x00\x18ftypheic\x00\x00\x00\x00mif1heic"
