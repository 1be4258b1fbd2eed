"""Abstract contract for discovery image metadata persistence."""

from abc import ABC, abstractmethod

from core.models.image import ImageRecord


class ImageMetadataRepository(ABC):
    """Contract for storing and retrieving `discovery_images` rows.

    Implementations could be DynamoDB, PostgreSQL, MongoDB, etc.
    Services depend on this interface, not the implementation.
    """

    @abstractmethod
    def insert_record(self, *, record: ImageRecord) -> None:
        """Insert a new image row.

        Raises:
            MetadataWriteFailedError: If the row cannot be written
        """

    @abstractmethod
    def fetch_record(self, *, image_id: str) -> ImageRecord | None:
        """Fetch a single image row.

        Returns:
            The record or None if not found

        Raises:
            MetadataReadFailedError: If fetch fails
        """

    @abstractmethod
    def list_for_discovery(self, *, discovery_id: str) -> list[ImageRecord]:
        """List every image row of a discovery.

        Returns:
            Records sorted by `image_order` ascending

        Raises:
            MetadataReadFailedError: If the query fails
        """

    @abstractmethod
    def max_order(self, *, discovery_id: str) -> int | None:
        """Return the highest `image_order` of a discovery, or None if it has no images.

        Raises:
            MetadataReadFailedError: If the query fails
        """

    @abstractmethod
    def update_order(self, *, discovery_id: str, image_id: str, image_order: int) -> None:
        """Set the display order of an image belonging to `discovery_id`.

        Raises:
            NotFoundError: If the image does not exist in that discovery
            MetadataWriteFailedError: If the update fails
        """

    @abstractmethod
    def update_cached_url(self, *, image_id: str, image_url: str, url_issued_at: str) -> None:
        """Store a refreshed signed URL and its issuance timestamp.

        Must not create a row that no longer exists.

        Raises:
            MetadataWriteFailedError: If the update fails
        """

    @abstractmethod
    def delete_record(self, *, image_id: str) -> None:
        """Delete an image row.

        Raises:
            MetadataWriteFailedError: If deletion fails
        """
