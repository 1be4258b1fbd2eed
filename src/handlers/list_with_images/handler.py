"""
Lambda handler responsible for listing a discovery's images.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError as PydanticValidationError

from core.models.errors import ImageServiceError
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.validators import (
    path_parameters,
    sanitize_validation_errors,
    validate_request,
)

from .models import ListWithImagesRequest, ListWithImagesResponse
from .service import ListWithImagesService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle GET /v1/discoveries/{discovery_id}/images.

    Images whose URL cannot be resolved are listed under `failed`
    instead of failing the request.
    """
    request_id = getattr(context, "aws_request_id", None)

    logger.info(
        "Received list discovery images request",
        extra={
            "path": event.get("path"),
            "path_params": event.get("pathParameters"),
            "request_id": request_id,
        },
    )

    try:
        request = validate_request(ListWithImagesRequest, path_parameters(event))
    except PydanticValidationError as exc:
        logger.warning("Invalid path parameters", extra={"error_count": exc.error_count()})
        return ResponseBuilder.bad_request(
            message="Invalid request params",
            details={"errors": sanitize_validation_errors(exc.errors())},
            request_id=request_id,
        )

    try:
        result = ListWithImagesService().list_with_images(request.discovery_id)
    except ImageServiceError as exc:
        logger.exception(
            "Failed to list discovery images",
            extra={"discovery_id": request.discovery_id, "error_code": exc.error_code},
        )
        return ResponseBuilder.from_service_error(exc, request_id=request_id)

    response = ListWithImagesResponse(
        discovery_id=request.discovery_id,
        images=result.succeeded,
        failed=result.failed,
        returned_count=len(result.succeeded),
    )

    return ResponseBuilder.ok(response.model_dump(), request_id=request_id)
