"""Business logic for removing every image of a discovery.

This is the cascade run when a discovery is deleted: each image follows the
same storage-first policy as single removal, and images whose bytes could
not be deleted keep their rows.
"""

from aws_lambda_powertools import Logger

from core.models.batch import BatchResult
from core.services.wiring import ImageComponents, build_components

logger = Logger(UTC=True)


class DeleteAllImagesService:
    def __init__(self, components: ImageComponents | None = None) -> None:
        components = components or build_components()
        self.records = components.records

    def delete_all(self, discovery_id: str) -> BatchResult[str]:
        """Remove all of the discovery's images.

        Raises:
            MetadataReadFailedError: If the rows cannot be read
            PartialBatchFailureError: If any image could not be removed
        """
        logger.debug("Removing all discovery images", extra={"discovery_id": discovery_id})
        return self.records.remove_all_for_discovery(discovery_id)
