"""
API Gateway proxy responses for the discovery image handlers.

Every response is JSON with CORS headers; error bodies share the shape
`{"error", "message", "timestamp", "details"?, "request_id"?}`.
"""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from core.models.errors import (
    ImageServiceError,
    MetadataReadFailedError,
    MetadataWriteFailedError,
    NotFoundError,
    PartialBatchFailureError,
    StorageUnavailableError,
    ValidationError,
)
from core.utils.constants import (
    CORS_HEADERS,
    CORS_METHODS,
    CORS_ORIGIN,
    DEFAULT_CONTENT_TYPE,
    ERROR_CODE_VALIDATION_FAILED,
    EXPOSE_HEADERS,
)
from core.utils.time import utc_now_iso

JsonDict = dict[str, Any]

# First match wins, so subclasses go before their parents
_SERVICE_ERROR_STATUS: tuple[tuple[type[ImageServiceError], HTTPStatus], ...] = (
    (ValidationError, HTTPStatus.UNPROCESSABLE_ENTITY),
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (StorageUnavailableError, HTTPStatus.SERVICE_UNAVAILABLE),
    (MetadataReadFailedError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (MetadataWriteFailedError, HTTPStatus.INTERNAL_SERVER_ERROR),
)


def status_for(exc: ImageServiceError) -> HTTPStatus:
    """HTTP status a domain error is reported with."""
    for error_type, status in _SERVICE_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status

    return HTTPStatus.INTERNAL_SERVER_ERROR


class ResponseBuilder:
    """Factory for API Gateway-compatible HTTP responses."""

    CORS: dict[str, str] = {
        "Access-Control-Allow-Origin": CORS_ORIGIN,
        "Access-Control-Allow-Headers": CORS_HEADERS,
        "Access-Control-Allow-Methods": CORS_METHODS,
        "Access-Control-Expose-Headers": EXPOSE_HEADERS,
    }

    @classmethod
    def _headers(cls, cors_origin: str | None) -> dict[str, str]:
        headers = {"Content-Type": DEFAULT_CONTENT_TYPE, **cls.CORS}
        if cors_origin:
            headers["Access-Control-Allow-Origin"] = cors_origin
        return headers

    @classmethod
    def respond(
        cls,
        status: HTTPStatus,
        body: JsonDict | None = None,
        *,
        request_id: str | None = None,
        cors_origin: str | None = None,
    ) -> JsonDict:
        """Serialize `body` (plus `request_id`) into a proxy response."""
        payload: JsonDict = dict(body or {})
        if request_id:
            payload["request_id"] = request_id

        return {
            "statusCode": status.value,
            "headers": cls._headers(cors_origin),
            "body": json.dumps(payload, default=str),
        }

    @classmethod
    def preflight(cls, cors_origin: str | None = None) -> JsonDict:
        """Empty 204 answering a CORS OPTIONS request."""
        return {
            "statusCode": HTTPStatus.NO_CONTENT.value,
            "headers": cls._headers(cors_origin),
            "body": "",
        }

    @classmethod
    def ok(cls, body: JsonDict, **kwargs: Any) -> JsonDict:
        return cls.respond(HTTPStatus.OK, body, **kwargs)

    @classmethod
    def created(cls, body: JsonDict, **kwargs: Any) -> JsonDict:
        return cls.respond(HTTPStatus.CREATED, body, **kwargs)

    @classmethod
    def multi_status(cls, body: JsonDict, **kwargs: Any) -> JsonDict:
        """207 for batches where only some items succeeded."""
        return cls.respond(HTTPStatus.MULTI_STATUS, body, **kwargs)

    @classmethod
    def error(
        cls,
        *,
        status: HTTPStatus,
        message: str,
        error: str | None = None,
        details: JsonDict | list[Any] | None = None,
        request_id: str | None = None,
        cors_origin: str | None = None,
    ) -> JsonDict:
        payload: JsonDict = {
            "error": error or status.name,
            "message": message,
            "timestamp": utc_now_iso(),
        }
        if details:
            payload["details"] = details

        return cls.respond(status, payload, request_id=request_id, cors_origin=cors_origin)

    @classmethod
    def bad_request(cls, message: str, **kwargs: Any) -> JsonDict:
        return cls.error(status=HTTPStatus.BAD_REQUEST, message=message, **kwargs)

    @classmethod
    def validation_error(
        cls,
        *,
        message: str,
        error: str = ERROR_CODE_VALIDATION_FAILED,
        **kwargs: Any,
    ) -> JsonDict:
        return cls.error(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            error=error,
            message=message,
            **kwargs,
        )

    @classmethod
    def service_unavailable(cls, message: str = "Service unavailable", **kwargs: Any) -> JsonDict:
        return cls.error(status=HTTPStatus.SERVICE_UNAVAILABLE, message=message, **kwargs)

    @classmethod
    def internal_error(cls, message: str = "Internal server error", **kwargs: Any) -> JsonDict:
        return cls.error(status=HTTPStatus.INTERNAL_SERVER_ERROR, message=message, **kwargs)

    @classmethod
    def from_service_error(
        cls,
        exc: ImageServiceError,
        *,
        request_id: str | None = None,
        cors_origin: str | None = None,
    ) -> JsonDict:
        """Translate a domain error into its HTTP response.

        Only validation errors forward their details, which describe the
        client's own input; other details can name internal keys.
        """
        return cls.error(
            status=status_for(exc),
            error=exc.error_code,
            message=exc.message,
            details=exc.details if isinstance(exc, ValidationError) else None,
            request_id=request_id,
            cors_origin=cors_origin,
        )

    @classmethod
    def from_partial_failure(
        cls,
        exc: PartialBatchFailureError,
        body: JsonDict,
        *,
        request_id: str | None = None,
        cors_origin: str | None = None,
    ) -> JsonDict:
        """207 when some items succeeded, else the first failure's own status.

        `body` lists the per-item outcomes either way; a total failure also
        carries the first failure's `error` code.
        """
        if exc.result.any_succeeded:
            return cls.multi_status(body, request_id=request_id, cors_origin=cors_origin)

        cause = exc.result.first_cause
        status = status_for(cause) if isinstance(cause, ImageServiceError) else HTTPStatus.INTERNAL_SERVER_ERROR
        failed = exc.result.failed

        return cls.respond(
            status,
            {"error": failed[0].error_code if failed else exc.error_code, **body},
            request_id=request_id,
            cors_origin=cors_origin,
        )
