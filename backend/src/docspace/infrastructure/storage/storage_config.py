"""Connection settings for the S3-compatible bucket behind every blob store.

MinIO in development, AWS S3 in production. A blank STORAGE_ENDPOINT means
AWS regional endpoints.
"""

import re
from dataclasses import dataclass
from typing import Optional

from ...config import settings

# S3 naming rules: 3-63 chars, lowercase letters, digits, dots and hyphens
_BUCKET_NAME = re.compile(r"[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]")


@dataclass(frozen=True)
class StorageConfig:
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"
    use_ssl: bool = True


def _endpoint_url(endpoint: Optional[str], use_ssl: bool) -> Optional[str]:
    if not endpoint:
        return None
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    return f"{'https' if use_ssl else 'http'}://{endpoint}"


def load_storage_config_from_env() -> StorageConfig:
    """StorageConfig from the STORAGE_* settings; bare host:port endpoints get a scheme."""
    return StorageConfig(
        endpoint_url=_endpoint_url(settings.STORAGE_ENDPOINT, settings.STORAGE_USE_SSL),
        access_key=settings.STORAGE_ACCESS_KEY,
        secret_key=settings.STORAGE_SECRET_KEY,
        bucket_name=settings.STORAGE_BUCKET,
        region=settings.STORAGE_REGION,
        use_ssl=settings.STORAGE_USE_SSL,
    )


def validate_storage_config(config: StorageConfig) -> None:
    """
    Raises:
        ValueError: A credential or the bucket is missing, the bucket name is
            not a valid S3 name, the endpoint has no scheme, or AWS is
            selected without a region
    """
    for field in ("access_key", "secret_key", "bucket_name"):
        if not getattr(config, field):
            raise ValueError(f"Storage {field} is required")

    if not _BUCKET_NAME.fullmatch(config.bucket_name):
        raise ValueError(f"Invalid bucket_name: {config.bucket_name}")

    if config.endpoint_url is None:
        if not config.region:
            raise ValueError("AWS region is required when STORAGE_ENDPOINT is not set")
    elif not config.endpoint_url.startswith(("http://", "https://")):
        raise ValueError(f"Invalid endpoint_url: {config.endpoint_url}. Must start with http:// or https://")
