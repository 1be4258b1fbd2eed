"""Pydantic models for reordering a discovery's images."""

from pydantic import BaseModel, ConfigDict, Field

from core.models.batch import BatchFailure
from core.models.image import ImageOrderUpdate
from core.utils.constants import ID_PATTERN


class ReorderImagesRequest(BaseModel):
    """Validation model for image reorder requests."""

    model_config = ConfigDict(str_strip_whitespace=True)

    discovery_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern=ID_PATTERN,
        description="Discovery identifier (from the path)",
    )
    order: list[ImageOrderUpdate] = Field(
        ...,
        min_length=1,
        description="New display order per image",
    )


class ReorderImagesResponse(BaseModel):
    """Outcome of a reorder; `failed` is empty on full success."""

    discovery_id: str = Field(..., description="Discovery identifier")
    updated: list[str] = Field(..., description="Image ids whose order was persisted")
    failed: list[BatchFailure] = Field(default_factory=list, description="Updates that did not persist")
    message: str = Field(..., description="Outcome message")
