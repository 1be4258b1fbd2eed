"""Abstract contract for image object storage."""

from abc import ABC, abstractmethod

from core.models.image import SignedURL


class ObjectStore(ABC):
    """Contract for storing image bytes under caller-supplied keys.

    Implementations could be S3, R2, GCS, local disk, etc.
    Every operation addresses a single object and none of them retries;
    retry policy belongs to callers.
    """

    @abstractmethod
    def put(
        self,
        *,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        """Upload bytes under `key`, overwriting any existing object.

        Args:
            key: Object key, unique by construction of the caller
            data: Binary image content
            content_type: MIME type (e.g., 'image/jpeg')
            metadata: User metadata stored alongside the object

        Raises:
            StorageUnavailableError: If the upload fails
        """

    @abstractmethod
    def signed_get_url(self, *, key: str, expires_in: int) -> SignedURL:
        """Generate a time-limited read URL for `key`.

        Existence is not checked; a missing object surfaces when the URL
        is first used.

        Raises:
            ObjectNotFoundError: If the service reports the key missing
            StorageUnavailableError: If signing fails
        """

    @abstractmethod
    def delete(self, *, key: str) -> None:
        """Delete the object under `key`.

        Deleting a key that does not exist is not an error.

        Raises:
            StorageUnavailableError: If the deletion fails
        """

    @abstractmethod
    def get(self, *, key: str) -> tuple[bytes, str, int]:
        """Download the object under `key`.

        Returns:
            Tuple of (content_bytes, content_type, content_length)

        Raises:
            ObjectNotFoundError: If the object doesn't exist
            StorageUnavailableError: If the download fails
        """
