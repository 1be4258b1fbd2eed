"""
Lambda handler responsible for reordering a discovery's images.
"""

import json
from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError as PydanticValidationError

from core.models.errors import ImageServiceError, PartialBatchFailureError
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.validators import (
    parse_json_body,
    path_parameters,
    sanitize_validation_errors,
    validate_request,
)

from .models import ReorderImagesRequest, ReorderImagesResponse
from .service import ReorderImagesService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle PUT /v1/discoveries/{discovery_id}/images/order.

    Expected body:
    {
        "order": [{"image_id": "img_a", "order": 0}, ...]
    }

    Returns 200 when every update persisted, 207 Multi-Status listing
    `updated` and `failed` when only some did, and the first failure's
    status (same body) when none did.
    """
    request_id = getattr(context, "aws_request_id", None)

    logger.info(
        "Received reorder images request",
        extra={"path": event.get("path"), "request_id": request_id},
    )

    try:
        body = parse_json_body(event)
    except json.JSONDecodeError as exc:
        logger.exception("Invalid JSON body received", exc_info=exc)
        return ResponseBuilder.bad_request(message="Invalid JSON body", request_id=request_id)

    body["discovery_id"] = path_parameters(event).get("discovery_id")

    try:
        request = validate_request(ReorderImagesRequest, body)
    except PydanticValidationError as exc:
        logger.error("Request validation failed", extra={"error_count": exc.error_count()})
        return ResponseBuilder.bad_request(
            message="Invalid request params",
            details={"errors": sanitize_validation_errors(exc.errors())},
            request_id=request_id,
        )

    try:
        result = ReorderImagesService().reorder(request.discovery_id, request.order)

    except PartialBatchFailureError as exc:
        response = ReorderImagesResponse(
            discovery_id=request.discovery_id,
            updated=exc.result.succeeded,
            failed=exc.result.failed,
            message=exc.message,
        )
        return ResponseBuilder.from_partial_failure(exc, response.model_dump(), request_id=request_id)

    except ImageServiceError as exc:
        logger.exception(
            "Failed to reorder images",
            extra={"discovery_id": request.discovery_id, "error_code": exc.error_code},
        )
        return ResponseBuilder.from_service_error(exc, request_id=request_id)

    response = ReorderImagesResponse(
        discovery_id=request.discovery_id,
        updated=result.succeeded,
        message="Images reordered successfully",
    )

    return ResponseBuilder.ok(response.model_dump(), request_id=request_id)
