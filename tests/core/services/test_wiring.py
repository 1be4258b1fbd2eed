from core.infrastructure.aws.dynamodb_image_records import DynamoDBImageRecords
from core.infrastructure.aws.s3_object_store import S3ObjectStore
from core.models.image import ImagePayload
from core.services.wiring import build_components
from core.utils.config import ServiceSettings


def test_builds_aws_backed_components_by_default(aws_mock) -> None:
    components = build_components(ServiceSettings.from_env())

    assert isinstance(components.storage, S3ObjectStore)
    assert isinstance(components.metadata, DynamoDBImageRecords)
    assert components.records.cache is components.cache
    assert components.pipeline.storage is components.storage


def test_settings_flow_into_components(memory_store, memory_records) -> None:
    settings = ServiceSettings(signed_url_ttl_seconds=600, max_in_flight=3)

    components = build_components(settings, storage=memory_store, metadata=memory_records)

    assert components.cache.ttl_seconds == 600
    assert components.cache.max_in_flight == 3
    assert components.pipeline.max_in_flight == 3
    assert components.records.max_in_flight == 3


def test_full_lifecycle_against_aws(aws_components, s3_object_keys, sample_png_binary) -> None:
    keys = aws_components.pipeline.upload(
        [ImagePayload(data=sample_png_binary, content_type="image/png") for _ in range(2)],
        owner_id="user_1",
        discovery_id="disc_1",
    )
    attached = aws_components.records.attach("disc_1", keys)

    listed = aws_components.records.list_for_discovery("disc_1")
    assert listed.ok
    assert [r.image_id for r in listed.succeeded] == [r.image_id for r in attached]
    assert [r.image_url for r in listed.succeeded] == [r.image_url for r in attached]

    aws_components.records.remove_all_for_discovery("disc_1")

    assert s3_object_keys() == []
    assert aws_components.metadata.list_for_discovery(discovery_id="disc_1") == []
