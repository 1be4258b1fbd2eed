"""Pydantic models for removing a single image."""

from pydantic import BaseModel, ConfigDict, Field

from core.utils.constants import ID_PATTERN


class RemoveImageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    image_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern=ID_PATTERN,
        description="Image identifier",
    )


class RemoveImageResponse(BaseModel):
    """Response model for a removed image."""

    image_id: str = Field(..., description="Removed image identifier")
    discovery_id: str = Field(..., description="Discovery the image belonged to")
    image_key: str = Field(..., description="Object key that was deleted")
    deleted_at: str = Field(..., description="Deletion timestamp")
    message: str = Field(..., description="Success message")
