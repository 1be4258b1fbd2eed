"""Process-wide service configuration read from the environment."""

import os

from pydantic import BaseModel, ConfigDict, Field

from core.utils.constants import (
    DEFAULT_MAX_IN_FLIGHT,
    DEFAULT_SIGNED_URL_TTL_SECONDS,
    ENV_AWS_ENDPOINT_URL,
    ENV_AWS_REGION,
    ENV_DISCOVERY_IMAGES_TABLE_NAME,
    ENV_IMAGE_S3_BUCKET_NAME,
    ENV_SIGNED_URL_TTL_SECONDS,
    ENV_STORAGE_MAX_IN_FLIGHT,
    MAX_IN_FLIGHT_CEILING,
    MAX_SIGNED_URL_TTL_SECONDS,
    MIN_SIGNED_URL_TTL_SECONDS,
)


class ServiceSettings(BaseModel):
    """Read-only settings shared by every component.

    The signed URL TTL doubles as the cache staleness window.
    """

    model_config = ConfigDict(frozen=True)

    signed_url_ttl_seconds: int = Field(
        DEFAULT_SIGNED_URL_TTL_SECONDS,
        ge=MIN_SIGNED_URL_TTL_SECONDS,
        le=MAX_SIGNED_URL_TTL_SECONDS,
    )
    max_in_flight: int = Field(DEFAULT_MAX_IN_FLIGHT, ge=1, le=MAX_IN_FLIGHT_CEILING)

    bucket_name: str | None = None
    table_name: str | None = None
    endpoint_url: str | None = None
    region: str | None = None

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        """Build settings from environment variables.

        Raises:
            pydantic.ValidationError: If a numeric variable is out of range
        """
        values: dict[str, object] = {
            "bucket_name": os.getenv(ENV_IMAGE_S3_BUCKET_NAME) or None,
            "table_name": os.getenv(ENV_DISCOVERY_IMAGES_TABLE_NAME) or None,
            "endpoint_url": os.getenv(ENV_AWS_ENDPOINT_URL) or None,
            "region": os.getenv(ENV_AWS_REGION) or None,
        }

        ttl = os.getenv(ENV_SIGNED_URL_TTL_SECONDS)
        if ttl:
            values["signed_url_ttl_seconds"] = ttl

        max_in_flight = os.getenv(ENV_STORAGE_MAX_IN_FLIGHT)
        if max_in_flight:
            values["max_in_flight"] = max_in_flight

        return cls.model_validate(values)


def get_settings() -> ServiceSettings:
    """Return settings for the current process environment."""
    return ServiceSettings.from_env()
