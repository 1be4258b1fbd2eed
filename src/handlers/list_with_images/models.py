"""Pydantic models for listing a discovery's images."""

from pydantic import BaseModel, ConfigDict, Field

from core.models.batch import BatchFailure
from core.models.image import ImageRecord
from core.utils.constants import ID_PATTERN


class ListWithImagesRequest(BaseModel):
    """Path parameters for listing a discovery's images."""

    model_config = ConfigDict(str_strip_whitespace=True)

    discovery_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern=ID_PATTERN,
        description="Discovery identifier",
    )


class ListWithImagesResponse(BaseModel):
    """Images in display order plus any that could not be resolved."""

    discovery_id: str = Field(..., description="Discovery identifier")
    images: list[ImageRecord] = Field(..., description="Resolved images ordered by image_order")
    failed: list[BatchFailure] = Field(
        default_factory=list,
        description="Images whose URL could not be resolved",
    )
    returned_count: int = Field(..., ge=0, description="Number of resolved images")
