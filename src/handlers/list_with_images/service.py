"""Business logic for listing a discovery's images with usable URLs."""

from aws_lambda_powertools import Logger

from core.models.batch import BatchResult
from core.models.image import ImageRecord
from core.services.wiring import ImageComponents, build_components

logger = Logger(UTC=True)


class ListWithImagesService:
    def __init__(self, components: ImageComponents | None = None) -> None:
        components = components or build_components()
        self.records = components.records

    def list_with_images(self, discovery_id: str) -> BatchResult[ImageRecord]:
        """Return the discovery's images, refreshing stale URLs on the way.

        Raises:
            MetadataReadFailedError: If the rows cannot be read
        """
        result = self.records.list_for_discovery(discovery_id)

        logger.info(
            "Listed discovery images",
            extra={
                "discovery_id": discovery_id,
                "returned_count": len(result.succeeded),
                "failed_count": len(result.failed),
            },
        )
        return result
