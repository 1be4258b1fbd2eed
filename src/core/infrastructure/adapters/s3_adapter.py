"""Thin adapter over a boto3 client for S3-compatible object storage.

Works against AWS S3, Cloudflare R2 and LocalStack; the endpoint, region
and bucket come from `ServiceSettings`. Nothing here translates errors:
`botocore` exceptions reach the object store, which maps them.
"""

from collections.abc import Mapping
from typing import Any, Protocol

import boto3
from botocore.config import Config

from core.utils.config import ServiceSettings, get_settings
from core.utils.constants import ENV_IMAGE_S3_BUCKET_NAME

# botocore's own default pool size
_MIN_POOL_CONNECTIONS = 10


class S3AdapterProtocol(Protocol):
    """Bucket-scoped object operations used by the object store."""

    @property
    def bucket(self) -> str: ...

    def put_object(
        self,
        *,
        key: str,
        body: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None: ...

    def get_object(self, *, key: str) -> Mapping[str, Any]: ...

    def delete_object(self, *, key: str) -> None: ...

    def presign_get_object(self, *, key: str, expires_in: int) -> str: ...


def create_s3_client(settings: ServiceSettings) -> Any:
    """Build a SigV4 client sized for the fan-out cap.

    boto3 clients are thread-safe, so one client is shared by every worker
    of a batch; the pool must hold at least `max_in_flight` connections.
    """
    return boto3.client(
        "s3",
        endpoint_url=settings.endpoint_url,
        region_name=settings.region,
        config=Config(
            signature_version="s3v4",
            max_pool_connections=max(_MIN_POOL_CONNECTIONS, settings.max_in_flight),
        ),
    )


class S3Adapter:
    """Object operations bound to the configured image bucket."""

    def __init__(self, settings: ServiceSettings | None = None) -> None:
        settings = settings or get_settings()

        if not settings.bucket_name:
            raise RuntimeError(f"{ENV_IMAGE_S3_BUCKET_NAME} environment variable is not set")

        self._bucket = settings.bucket_name
        self._client = create_s3_client(settings)

    @property
    def bucket(self) -> str:
        return self._bucket

    def put_object(
        self,
        *,
        key: str,
        body: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        """Write `body` under `key`, replacing any existing object."""
        self._client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
            Metadata=metadata,
        )

    def get_object(self, *, key: str) -> Mapping[str, Any]:
        return self._client.get_object(Bucket=self._bucket, Key=key)

    def delete_object(self, *, key: str) -> None:
        # S3 answers 204 for keys that do not exist; R2 and LocalStack may 404
        self._client.delete_object(Bucket=self._bucket, Key=key)

    def presign_get_object(self, *, key: str, expires_in: int) -> str:
        """Sign a GET for `key` locally; the bucket is not contacted."""
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=expires_in,
        )
