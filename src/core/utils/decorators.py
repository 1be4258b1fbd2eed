"""
Common decorators for API Gateway Lambda handlers.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from aws_lambda_powertools import Logger

from core.models.errors import ImageServiceError
from core.utils.response import ResponseBuilder

logger = Logger(service="discovery-images-api", UTC=True)

JsonDict = dict[str, Any]


def _get_user_friendly_message(exc: Exception) -> str:
    """Map a non-domain exception to a message safe to show a client.

    Messages that already read as user-facing are passed through.
    """
    exc_str = str(exc)

    friendly_prefixes = (
        "Invalid",
        "Missing",
        "Must",
        "Image",
        "Discovery",
    )

    if exc_str and any(exc_str.startswith(prefix) for prefix in friendly_prefixes):
        return exc_str

    if isinstance(exc, (UnicodeDecodeError, UnicodeEncodeError)):
        return "The request contains invalid characters or encoding."

    if isinstance(exc, ValueError):
        return "The provided data is invalid. Please check your input and try again."

    if isinstance(exc, (KeyError, TypeError)):
        return "The request is missing data or has the wrong format."

    return "We encountered an issue processing your request. Please try again."


def _log_error(
    message: str,
    *,
    handler_name: str,
    request_id: str | None,
    exc: Exception,
    level: str = "warning",
) -> None:
    log_extra = {
        "handler": handler_name,
        "request_id": request_id,
        "error": str(exc),
        "error_type": type(exc).__name__,
    }

    if isinstance(exc, ImageServiceError):
        log_extra["error_code"] = exc.error_code

    if level == "exception":
        logger.exception(message, extra=log_extra)
    else:
        logger.warning(message, extra=log_extra)


def api_gateway_handler(
    func: Callable[..., JsonDict],
) -> Callable[..., JsonDict]:
    """
    Decorator for API Gateway Lambda handlers.

    Provides:
    - CORS preflight (OPTIONS) handling
    - Translation of escaped domain errors into their HTTP responses
    - A generic 400/500 for anything else, never leaking internals

    Example:
        @api_gateway_handler
        def lambda_handler(event, context):
            return ResponseBuilder.ok({"status": "ok"})
    """

    @wraps(func)
    def wrapper(
        event: Any,
        context: Any,
        *,
        cors_origin: str | None = None,
    ) -> JsonDict:
        if event.get("httpMethod") == "OPTIONS":
            return ResponseBuilder.preflight(cors_origin)

        request_id = getattr(context, "aws_request_id", None)

        try:
            return func(event, context)

        except ImageServiceError as exc:
            _log_error(
                "Unhandled service error in handler",
                handler_name=func.__name__,
                request_id=request_id,
                exc=exc,
            )
            return ResponseBuilder.from_service_error(
                exc,
                request_id=request_id,
                cors_origin=cors_origin,
            )

        except (ValueError, KeyError, TypeError) as exc:
            _log_error(
                "Invalid request in handler",
                handler_name=func.__name__,
                request_id=request_id,
                exc=exc,
            )
            return ResponseBuilder.bad_request(
                _get_user_friendly_message(exc),
                request_id=request_id,
                cors_origin=cors_origin,
            )

        except Exception as exc:
            _log_error(
                "Unexpected error in handler",
                handler_name=func.__name__,
                request_id=request_id,
                exc=exc,
                level="exception",
            )
            return ResponseBuilder.internal_error(
                "We're experiencing technical difficulties. Please try again in a few moments.",
                request_id=request_id,
                cors_origin=cors_origin,
            )

    return wrapper
