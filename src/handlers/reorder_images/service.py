"""Business logic for reordering a discovery's images."""

from collections.abc import Sequence

from core.models.batch import BatchResult
from core.models.image import ImageOrderUpdate
from core.services.wiring import ImageComponents, build_components


class ReorderImagesService:
    """Application service applying new display orders."""

    def __init__(self, components: ImageComponents | None = None) -> None:
        components = components or build_components()
        self.records = components.records

    def reorder(
        self,
        discovery_id: str,
        new_order: Sequence[ImageOrderUpdate],
    ) -> BatchResult[str]:
        """Raises PartialBatchFailureError if any update did not persist."""
        return self.records.reorder(discovery_id, new_order)
