"""
Lambda handler responsible for removing every image of a discovery.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError as PydanticValidationError

from core.models.errors import ImageServiceError, PartialBatchFailureError
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.validators import (
    path_parameters,
    sanitize_validation_errors,
    validate_request,
)

from .models import DeleteAllImagesRequest, DeleteAllImagesResponse
from .service import DeleteAllImagesService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics()


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle DELETE /v1/discoveries/{discovery_id}/images.

    Returns 200 when every image was removed, 207 Multi-Status listing
    `removed` and `failed` when only some were, and the first failure's
    status (same body) when none were.
    """
    request_id = getattr(context, "aws_request_id", None)

    logger.info(
        "Received delete all images request",
        extra={
            "path_params": event.get("pathParameters"),
            "request_id": request_id,
        },
    )

    try:
        request = validate_request(DeleteAllImagesRequest, path_parameters(event))
    except PydanticValidationError as exc:
        logger.warning("Invalid path parameters", extra={"error_count": exc.error_count()})
        return ResponseBuilder.bad_request(
            message="Invalid request params",
            details={"errors": sanitize_validation_errors(exc.errors())},
            request_id=request_id,
        )

    try:
        result = DeleteAllImagesService().delete_all(request.discovery_id)

    except PartialBatchFailureError as exc:
        removed = exc.result.succeeded
        metrics.add_metric(name="ImagesRemoved", unit=MetricUnit.Count, value=len(removed))

        response = DeleteAllImagesResponse(
            discovery_id=request.discovery_id,
            removed=removed,
            failed=exc.result.failed,
            removed_count=len(removed),
            message=exc.message,
        )
        return ResponseBuilder.from_partial_failure(exc, response.model_dump(), request_id=request_id)

    except ImageServiceError as exc:
        logger.exception(
            "Failed to remove discovery images",
            extra={"discovery_id": request.discovery_id, "error_code": exc.error_code},
        )
        return ResponseBuilder.from_service_error(exc, request_id=request_id)

    metrics.add_metric(name="ImagesRemoved", unit=MetricUnit.Count, value=len(result))

    response = DeleteAllImagesResponse(
        discovery_id=request.discovery_id,
        removed=result.succeeded,
        removed_count=len(result.succeeded),
        message="Discovery images deleted successfully",
    )

    return ResponseBuilder.ok(response.model_dump(), request_id=request_id)
