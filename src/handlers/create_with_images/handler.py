"""
Lambda handler responsible for uploading a discovery's images and creating their rows.
"""

import json
from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError as PydanticValidationError

from core.models.errors import ImageServiceError, InvalidImageError
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.validators import (
    parse_json_body,
    path_parameters,
    sanitize_validation_errors,
    validate_request,
)

from .models import CreateWithImagesRequest, CreateWithImagesResponse
from .service import CreateWithImagesService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle discovery image creation requests.

    Expected API Gateway event structure:
    {
        "pathParameters": {"discovery_id": "disc_123"},
        "body": "{\"user_id\": ..., \"images\": [{\"file\": ..., ...}]}"
    }

    Args:
        event: API Gateway Lambda proxy event
        context: AWS Lambda execution context

    Returns:
        API Gateway-compatible HTTP response with the created image records
    """
    request_id = getattr(context, "aws_request_id", None)

    logger.info(
        "Received discovery image creation request",
        extra={
            "http_method": event.get("httpMethod"),
            "path": event.get("path"),
            "request_id": request_id,
        },
    )

    try:
        body = parse_json_body(event)
    except json.JSONDecodeError as exc:
        logger.exception("Invalid JSON body received", exc_info=exc)
        return ResponseBuilder.bad_request(message="Invalid JSON body", request_id=request_id)

    body["discovery_id"] = path_parameters(event).get("discovery_id")

    try:
        request = validate_request(CreateWithImagesRequest, body)
    except PydanticValidationError as exc:
        logger.error("Request validation failed", extra={"error_count": exc.error_count()})
        return ResponseBuilder.bad_request(
            message="Invalid request params",
            details={"errors": sanitize_validation_errors(exc.errors())},
            request_id=request_id,
        )

    try:
        service = CreateWithImagesService()
        records = service.create_with_images(
            user_id=request.user_id,
            discovery_id=request.discovery_id,
            payloads=[image.to_payload() for image in request.images],
        )

    except InvalidImageError as exc:
        logger.warning(
            "Rejected invalid image",
            extra={"discovery_id": request.discovery_id, "details": exc.details},
        )
        return ResponseBuilder.from_service_error(exc, request_id=request_id)

    except ImageServiceError as exc:
        logger.exception(
            "Failed to create discovery images",
            extra={"discovery_id": request.discovery_id, "error_code": exc.error_code},
        )
        return ResponseBuilder.from_service_error(exc, request_id=request_id)

    metrics.add_metric(name="ImagesCreated", unit=MetricUnit.Count, value=len(records))

    response = CreateWithImagesResponse(
        discovery_id=request.discovery_id,
        images=records,
        message="Images uploaded successfully",
    )

    return ResponseBuilder.created(response.model_dump(), request_id=request_id)
