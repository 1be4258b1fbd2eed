"""Request parsing and validation utilities."""

import json
from typing import Any, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Sanitize Pydantic validation errors for API responses.

    Keeps only the field location and a readable message, dropping
    `input`, `ctx` and `url` so request bytes never echo back.
    """
    sanitized: list[dict[str, str]] = []

    for err in errors:
        field = ".".join(str(x) for x in err.get("loc", [])) or "body"
        raw_msg = err.get("msg", "Invalid value")

        msg = raw_msg.replace("Value error,", "").strip()

        msg_lower = msg.lower()
        if "base64" in msg_lower:
            msg = "File must be a valid Base64-encoded string"
        elif "field required" in msg_lower:
            msg = "This field is required"
        elif "valid" in msg_lower and "type" in msg_lower:
            msg = "Invalid value type"

        sanitized.append({"field": field, "message": msg})

    return sanitized


def parse_json_body(event: dict[str, Any]) -> dict[str, Any]:
    """Decode the JSON body of an API Gateway event.

    Raises:
        json.JSONDecodeError: If the body is not valid JSON
        ValueError: If the body is not a JSON object
    """
    body = json.loads(event.get("body") or "{}")

    if not isinstance(body, dict):
        raise ValueError("Invalid request body: expected a JSON object")

    return body


def path_parameters(event: dict[str, Any]) -> dict[str, str]:
    return event.get("pathParameters") or {}


def validate_request(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate request data against a Pydantic model.

    Raises:
        pydantic.ValidationError: If the data does not match the model
    """
    return model.model_validate(data)
