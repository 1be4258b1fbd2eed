import base64
import json
from unittest.mock import patch

from core.models.errors import MetadataWriteFailedError, StorageUnavailableError
from core.utils.constants import MAX_FILE_SIZE
from handlers.create_with_images.handler import handler


def _event(images, discovery_id="disc_1", user_id="user_1"):
    return {
        "httpMethod": "POST",
        "pathParameters": {"discovery_id": discovery_id},
        "body": json.dumps({"user_id": user_id, "images": images}),
    }


def _image(data: bytes, content_type: str = "image/png", **extra):
    return {"file": base64.b64encode(data).decode(), "content_type": content_type, **extra}


class TestCreateWithImagesHandler:
    def test_create_success(self, in_memory_handlers, create_images_event, lambda_context, body) -> None:
        response = handler(create_images_event, lambda_context)

        assert response["statusCode"] == 201
        payload = body(response)
        assert payload["discovery_id"] == "disc_1"
        assert payload["message"] == "Images uploaded successfully"
        assert [img["image_order"] for img in payload["images"]] == [0, 1]
        assert payload["images"][0]["image_key"].startswith("users/user_1/discoveries/disc_1/")
        assert payload["images"][0]["image_key"].endswith(".png")
        assert payload["images"][1]["image_key"].endswith(".jpg")
        assert payload["images"][1]["exif_data"] == {"Model": "Pixel 8", "FNumber": 1.7}
        assert all(img["image_url"] for img in payload["images"])

    def test_second_request_appends(self, in_memory_handlers, create_images_event, lambda_context, body) -> None:
        handler(create_images_event, lambda_context)

        response = handler(create_images_event, lambda_context)

        assert [img["image_order"] for img in body(response)["images"]] == [2, 3]

    def test_create_against_aws(
        self,
        use_components,
        aws_components,
        create_images_event,
        lambda_context,
        s3_object_keys,
        body,
    ) -> None:
        use_components(aws_components)

        response = handler(create_images_event, lambda_context)

        assert response["statusCode"] == 201
        keys = [img["image_key"] for img in body(response)["images"]]
        assert s3_object_keys() == sorted(keys)

    def test_invalid_image_names_position(
        self, in_memory_handlers, sample_png_binary, lambda_context, body
    ) -> None:
        event = _event([_image(sample_png_binary), _image(b"GIF89a....", "image/gif")])

        response = handler(event, lambda_context)

        assert response["statusCode"] == 422
        payload = body(response)
        assert payload["error"] == "UNSUPPORTED_MIME_TYPE"
        assert payload["details"]["index"] == 1
        assert in_memory_handlers.storage.put_calls == []

    def test_file_size_exceeded(self, in_memory_handlers, lambda_context, body) -> None:
        event = _event([_image(b"\x89PNG\r\n\x1a\n" + b"x" * MAX_FILE_SIZE)])

        response = handler(event, lambda_context)

        assert response["statusCode"] == 422
        assert body(response)["error"] == "FILE_SIZE_EXCEEDED"

    def test_invalid_base64(self, in_memory_handlers, lambda_context, body) -> None:
        event = _event([{"file": "!!!invalid!!!", "content_type": "image/png"}])

        response = handler(event, lambda_context)

        assert response["statusCode"] == 400
        errors = body(response)["details"]["errors"]
        assert errors[0]["field"] == "images.0.file"
        assert errors[0]["message"] == "File must be a valid Base64-encoded string"

    def test_no_images(self, in_memory_handlers, lambda_context) -> None:
        response = handler(_event([]), lambda_context)

        assert response["statusCode"] == 400

    def test_invalid_discovery_id(self, in_memory_handlers, sample_png_binary, lambda_context) -> None:
        response = handler(_event([_image(sample_png_binary)], discovery_id="bad id!"), lambda_context)

        assert response["statusCode"] == 400

    def test_invalid_json(self, in_memory_handlers, lambda_context, body) -> None:
        response = handler(
            {"pathParameters": {"discovery_id": "disc_1"}, "body": "{not-json"},
            lambda_context,
        )

        assert response["statusCode"] == 400
        assert body(response)["message"] == "Invalid JSON body"

    def test_storage_failure(self, in_memory_handlers, sample_png_binary, lambda_context, body) -> None:
        in_memory_handlers.storage.fail_put_after = 0

        response = handler(_event([_image(sample_png_binary)]), lambda_context)

        assert response["statusCode"] == 503
        assert body(response)["message"] == "Unable to upload image at this time"

    def test_attach_failure_removes_uploaded_objects(
        self, in_memory_handlers, sample_png_binary, lambda_context
    ) -> None:
        in_memory_handlers.metadata.fail_insert_after = 0

        response = handler(_event([_image(sample_png_binary), _image(sample_png_binary)]), lambda_context)

        assert response["statusCode"] == 500
        assert in_memory_handlers.storage.objects == {}
        assert in_memory_handlers.metadata.rows == {}

    def test_attach_rollback_keeps_objects_of_leftover_rows(
        self, in_memory_handlers, sample_png_binary, lambda_context
    ) -> None:
        metadata = in_memory_handlers.metadata
        metadata.fail_insert_after = 1

        with patch.object(
            metadata,
            "delete_record",
            side_effect=MetadataWriteFailedError(message="Unable to delete image metadata"),
        ):
            response = handler(_event([_image(sample_png_binary), _image(sample_png_binary)]), lambda_context)

        assert response["statusCode"] == 500
        leftover = list(metadata.rows.values())
        assert len(leftover) == 1
        assert list(in_memory_handlers.storage.objects) == [leftover[0].image_key]

    def test_unexpected_error_is_generic(self, in_memory_handlers, sample_png_binary, lambda_context, body) -> None:
        with patch(
            "handlers.create_with_images.service.CreateWithImagesService.create_with_images",
            side_effect=RuntimeError("boto internals"),
        ):
            response = handler(_event([_image(sample_png_binary)]), lambda_context)

        assert response["statusCode"] == 500
        assert "boto" not in body(response)["message"]

    def test_service_errors_are_mapped(self, in_memory_handlers, sample_png_binary, lambda_context) -> None:
        with patch(
            "handlers.create_with_images.service.CreateWithImagesService.create_with_images",
            side_effect=MetadataWriteFailedError(message="Unable to save image metadata at this time"),
        ):
            response = handler(_event([_image(sample_png_binary)]), lambda_context)

        assert response["statusCode"] == 500

        with patch(
            "handlers.create_with_images.service.CreateWithImagesService.create_with_images",
            side_effect=StorageUnavailableError(message="down"),
        ):
            response = handler(_event([_image(sample_png_binary)]), lambda_context)

        assert response["statusCode"] == 503
