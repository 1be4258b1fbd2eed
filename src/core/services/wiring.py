"""Construction of the image components from service settings."""

from dataclasses import dataclass

from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapter
from core.infrastructure.adapters.s3_adapter import S3Adapter
from core.infrastructure.aws.dynamodb_image_records import DynamoDBImageRecords
from core.infrastructure.aws.s3_object_store import S3ObjectStore
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ObjectStore
from core.services.image_records import ImageRecordRepository
from core.services.signed_url_cache import SignedUrlCacheManager
from core.services.upload_pipeline import ImageUploadPipeline
from core.utils.config import ServiceSettings, get_settings


@dataclass(frozen=True)
class ImageComponents:
    """The object store, metadata store and the services built on them."""

    storage: ObjectStore
    metadata: ImageMetadataRepository
    cache: SignedUrlCacheManager
    pipeline: ImageUploadPipeline
    records: ImageRecordRepository


def build_components(
    settings: ServiceSettings | None = None,
    *,
    storage: ObjectStore | None = None,
    metadata: ImageMetadataRepository | None = None,
) -> ImageComponents:
    """Wire the image components, creating AWS-backed stores unless given."""
    settings = settings or get_settings()

    storage = storage or S3ObjectStore(S3Adapter(settings))
    metadata = metadata or DynamoDBImageRecords(DynamoDBAdapter(settings))

    cache = SignedUrlCacheManager(
        storage,
        metadata,
        ttl_seconds=settings.signed_url_ttl_seconds,
        max_in_flight=settings.max_in_flight,
    )

    return ImageComponents(
        storage=storage,
        metadata=metadata,
        cache=cache,
        pipeline=ImageUploadPipeline(storage, max_in_flight=settings.max_in_flight),
        records=ImageRecordRepository(
            metadata,
            storage,
            cache,
            max_in_flight=settings.max_in_flight,
        ),
    )
