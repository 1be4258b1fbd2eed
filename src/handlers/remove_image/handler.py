"""
Lambda handler responsible for removing a single image.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError as PydanticValidationError

from core.models.errors import ImageServiceError, NotFoundError
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.time import utc_now_iso
from core.utils.validators import (
    path_parameters,
    sanitize_validation_errors,
    validate_request,
)

from .models import RemoveImageRequest, RemoveImageResponse
from .service import RemoveImageService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle DELETE /v1/images/{image_id}.

    Expected API Gateway event structure:
    {
        "pathParameters": {"image_id": "img_123"}
    }
    """
    request_id = getattr(context, "aws_request_id", None)

    logger.info(
        "Received remove image request",
        extra={
            "path_params": event.get("pathParameters"),
            "request_id": request_id,
        },
    )

    try:
        request = validate_request(RemoveImageRequest, path_parameters(event))
    except PydanticValidationError as exc:
        logger.warning("Invalid path parameters", extra={"error_count": exc.error_count()})
        return ResponseBuilder.bad_request(
            message="Invalid request params",
            details={"errors": sanitize_validation_errors(exc.errors())},
            request_id=request_id,
        )

    try:
        record = RemoveImageService().remove_image(request.image_id)

    except NotFoundError as exc:
        logger.info("Image not found", extra={"image_id": request.image_id})
        return ResponseBuilder.from_service_error(exc, request_id=request_id)

    except ImageServiceError as exc:
        logger.exception(
            "Failed to remove image",
            extra={"image_id": request.image_id, "error_code": exc.error_code},
        )
        return ResponseBuilder.from_service_error(exc, request_id=request_id)

    metrics.add_metric(name="ImagesRemoved", unit=MetricUnit.Count, value=1)

    response = RemoveImageResponse(
        image_id=record.image_id,
        discovery_id=record.discovery_id,
        image_key=record.image_key,
        deleted_at=utc_now_iso(),
        message="Image deleted successfully",
    )

    return ResponseBuilder.ok(response.model_dump(), request_id=request_id)
