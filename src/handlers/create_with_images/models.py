"""Pydantic models for discovery image creation request/response."""

import base64
import binascii
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models.image import ImagePayload, ImageRecord
from core.utils.constants import ID_PATTERN, MAX_IMAGES_PER_REQUEST

logger = Logger(UTC=True)


class ImageFileInput(BaseModel):
    """One base64-encoded image in a creation request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    file: str = Field(..., description="Base64 encoded image file")
    content_type: str = Field("", max_length=100, description="Declared MIME type")
    filename: str | None = Field(None, max_length=255, description="Original file name")
    exif_data: dict[str, Any] | None = Field(None, description="Optional EXIF metadata")

    @field_validator("file")
    @classmethod
    def validate_file(cls, value: str) -> str:
        """
        Validate base64 file encoding only.

        Size and type are checked by the upload pipeline so the error can
        name the image's position in the batch.
        """
        if not value:
            raise ValueError("file must not be empty")

        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.error("File validation error: Invalid base64", extra={"error": str(e)})
            raise ValueError("Invalid base64 encoded file") from e

        return value

    def to_payload(self) -> ImagePayload:
        return ImagePayload(
            data=base64.b64decode(self.file),
            content_type=self.content_type,
            filename=self.filename,
            exif_data=self.exif_data,
        )


class CreateWithImagesRequest(BaseModel):
    """Validation model for creating a discovery's images."""

    model_config = ConfigDict(str_strip_whitespace=True)

    discovery_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern=ID_PATTERN,
        description="Discovery identifier (from the path)",
    )
    user_id: str = Field(
        ...,
        min_length=3,
        max_length=50,
        pattern=ID_PATTERN,
        description="Owning user (alphanumeric, underscore, hyphen)",
    )
    images: list[ImageFileInput] = Field(
        ...,
        min_length=1,
        max_length=MAX_IMAGES_PER_REQUEST,
        description="Images in display order",
    )


class CreateWithImagesResponse(BaseModel):
    """Response model for successfully attached images."""

    discovery_id: str = Field(..., description="Discovery identifier")
    images: list[ImageRecord] = Field(..., description="Created image records in display order")
    message: str = Field(..., description="Success message")
