"""Pydantic models for removing every image of a discovery."""

from pydantic import BaseModel, ConfigDict, Field

from core.models.batch import BatchFailure
from core.utils.constants import ID_PATTERN


class DeleteAllImagesRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    discovery_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern=ID_PATTERN,
        description="Discovery identifier",
    )


class DeleteAllImagesResponse(BaseModel):
    """Outcome of a discovery-wide removal."""

    discovery_id: str = Field(..., description="Discovery identifier")
    removed: list[str] = Field(..., description="Removed image ids")
    failed: list[BatchFailure] = Field(
        default_factory=list,
        description="Images that were kept because removal failed",
    )
    removed_count: int = Field(..., ge=0, description="Number of removed images")
    message: str = Field(..., description="Outcome message")
