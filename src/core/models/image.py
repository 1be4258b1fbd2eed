"""Shared discovery image models."""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    StrictBytes,
    StrictStr,
)

ObjectKey = str


class SignedURL(BaseModel):
    """A time-limited credentialed URL for reading one object.

    Regeneration produces a new instance; instances are never mutated.
    """

    model_config = ConfigDict(frozen=True)

    url: StrictStr = Field(..., description="Pre-signed GET URL")
    issued_at: StrictStr = Field(..., description="ISO-8601 issuance timestamp (UTC)")
    expires_in: PositiveInt = Field(..., description="Validity window in seconds")


class ImageRecord(BaseModel):
    """One image attached to a discovery (a `discovery_images` row)."""

    image_id: StrictStr = Field(..., description="Unique image identifier")
    discovery_id: StrictStr = Field(..., description="Owning discovery identifier")
    image_key: StrictStr = Field(..., description="Object key where the image bytes are stored")

    image_url: StrictStr | None = Field(None, description="Cached signed URL for display")
    image_order: NonNegativeInt = Field(..., description="Display order within the discovery")
    exif_data: dict[str, Any] | None = Field(None, description="Optional EXIF metadata")

    created_at: StrictStr = Field(..., description="ISO-8601 creation timestamp (UTC)")
    url_issued_at: StrictStr | None = Field(
        None,
        description="ISO-8601 issuance timestamp of the cached URL (UTC)",
    )

    def with_signed_url(self, signed: SignedURL) -> "ImageRecord":
        """Return a copy carrying the given signed URL."""
        return self.model_copy(
            update={"image_url": signed.url, "url_issued_at": signed.issued_at}
        )


class ImagePayload(BaseModel):
    """Raw image bytes handed over by an acquisition collaborator."""

    data: StrictBytes = Field(..., description="Raw image bytes")
    content_type: StrictStr = Field("", description="Declared MIME type")
    filename: StrictStr | None = Field(None, description="Original file name")
    exif_data: dict[str, Any] | None = Field(None, description="Optional EXIF metadata")


class ImageOrderUpdate(BaseModel):
    """A requested display position for one image."""

    image_id: StrictStr = Field(..., min_length=1, description="Image identifier")
    order: NonNegativeInt = Field(..., description="New display order")
