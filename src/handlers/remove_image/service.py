"""Business logic for removing one image.

Object bytes are deleted before the metadata row. If storage refuses the
delete the row stays, so no row is left pointing at missing bytes.
"""

from core.models.image import ImageRecord
from core.services.wiring import ImageComponents, build_components


class RemoveImageService:
    """Application service responsible for single image removal."""

    def __init__(self, components: ImageComponents | None = None) -> None:
        components = components or build_components()
        self.records = components.records

    def remove_image(self, image_id: str) -> ImageRecord:
        """Remove an image's bytes and row.

        Raises:
            NotFoundError: If the image row does not exist
            StorageUnavailableError: If the object cannot be deleted (row kept)
            MetadataWriteFailedError: If the row cannot be deleted
        """
        return self.records.remove(image_id)
