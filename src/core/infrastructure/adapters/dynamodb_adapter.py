"""Thin DynamoDB adapter wrapping boto3 table operations."""

import threading
from typing import Any, Protocol, cast

import boto3

from core.utils.config import ServiceSettings, get_settings
from core.utils.constants import ENV_DISCOVERY_IMAGES_TABLE_NAME


class DynamoDBTable(Protocol):
    """Minimal DynamoDB Table protocol."""

    def put_item(self, *, Item: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def get_item(self, *, Key: dict[str, Any]) -> dict[str, Any]: ...
    def update_item(self, *, Key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def delete_item(self, *, Key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def query(self, **kwargs: Any) -> dict[str, Any]: ...


class DynamoDBAdapterProtocol(Protocol):
    """Minimal DynamoDB adapter protocol (repository-facing)."""

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any]: ...

    def get_item(self, *, key: dict[str, Any]) -> dict[str, Any]: ...

    def update_item(self, *, key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...

    def delete_item(self, *, key: dict[str, Any]) -> dict[str, Any]: ...

    def query(self, **kwargs: Any) -> dict[str, Any]: ...


class DynamoDBAdapter:
    """Low-level DynamoDB operations (mechanical, no error handling).

    This adapter:
    - Wraps boto3 DynamoDB resource, one per thread (resources are not thread-safe)
    - Does NOT handle errors (lets them bubble up)
    - Domain implementations catch and translate errors
    """

    def __init__(self, settings: ServiceSettings | None = None) -> None:
        """Initialize DynamoDB table settings from configuration."""
        settings = settings or get_settings()

        if not settings.table_name:
            raise RuntimeError(
                f"{ENV_DISCOVERY_IMAGES_TABLE_NAME} environment variable is not set"
            )

        self._table_name = settings.table_name
        self._endpoint_url = settings.endpoint_url
        self._region = settings.region
        self._local = threading.local()

    @property
    def table(self) -> DynamoDBTable:
        """Table handle owned by the calling thread."""
        table: DynamoDBTable | None = getattr(self._local, "table", None)

        if table is None:
            dynamodb = boto3.Session().resource(
                "dynamodb",
                endpoint_url=self._endpoint_url,
                region_name=self._region,
            )
            table = cast(DynamoDBTable, dynamodb.Table(self._table_name))
            self._local.table = table

        return table

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Insert item into DynamoDB.

        Raises boto3 exceptions - caught by domain implementation.
        """
        kwargs: dict[str, Any] = {"Item": item}

        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression

        return self.table.put_item(**kwargs)

    def get_item(self, *, key: dict[str, Any]) -> dict[str, Any]:
        """Retrieve item by key.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.get_item(Key=key)

    def update_item(self, *, key: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        """Update attributes of an item.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.update_item(Key=key, **kwargs)

    def delete_item(self, *, key: dict[str, Any]) -> dict[str, Any]:
        """Delete item by key.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.delete_item(Key=key)

    def query(self, **kwargs: Any) -> dict[str, Any]:
        """Execute DynamoDB query.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.query(**kwargs)
