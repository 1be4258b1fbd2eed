import base64
import json
from types import SimpleNamespace
from typing import Any

import pytest

HANDLER_SERVICE_MODULES = (
    "handlers.create_with_images.service",
    "handlers.list_with_images.service",
    "handlers.reorder_images.service",
    "handlers.remove_image.service",
    "handlers.delete_all_images.service",
)


@pytest.fixture
def lambda_context():
    return SimpleNamespace(
        aws_request_id="test-request-id",
        function_name="test-function",
        memory_limit_in_mb=256,
        invoked_function_arn="arn:aws:lambda:us-east-1:000000000000:function:test",
        log_group_name="/aws/lambda/test-function",
        log_stream_name="2024/01/01/[$LATEST]test",
    )


@pytest.fixture
def use_components(monkeypatch):
    """
    Make every handler service build the given components.

    Usage:
        use_components(memory_components)
    """

    def _use(components) -> None:
        for module in HANDLER_SERVICE_MODULES:
            monkeypatch.setattr(f"{module}.build_components", lambda: components)

    return _use


@pytest.fixture
def in_memory_handlers(use_components, memory_components):
    use_components(memory_components)
    return memory_components


@pytest.fixture
def create_images_event(sample_png_binary, sample_jpeg_binary) -> dict[str, Any]:
    return {
        "httpMethod": "POST",
        "path": "/v1/discoveries/disc_1/images",
        "pathParameters": {"discovery_id": "disc_1"},
        "body": json.dumps(
            {
                "user_id": "user_1",
                "images": [
                    {
                        "file": base64.b64encode(sample_png_binary).decode("utf-8"),
                        "content_type": "image/png",
                        "filename": "first.png",
                    },
                    {
                        "file": base64.b64encode(sample_jpeg_binary).decode("utf-8"),
                        "content_type": "image/jpeg",
                        "filename": "second.jpg",
                        "exif_data": {"Model": "Pixel 8", "FNumber": 1.7},
                    },
                ],
            }
        ),
        "headers": {"Content-Type": "application/json"},
    }


@pytest.fixture
def discovery_event() -> dict[str, Any]:
    return {
        "httpMethod": "GET",
        "path": "/v1/discoveries/disc_1/images",
        "pathParameters": {"discovery_id": "disc_1"},
    }


def parse_body(response: dict[str, Any]) -> dict[str, Any]:
    return json.loads(response["body"])


@pytest.fixture
def body():
    return parse_body
