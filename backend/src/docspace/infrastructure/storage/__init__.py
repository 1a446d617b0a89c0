"""S3-compatible blob store adapter and its configuration."""

from .s3_blob_store import S3BlobStore, StorageError
from .storage_config import StorageConfig, load_storage_config_from_env, validate_storage_config

__all__ = [
    "S3BlobStore",
    "StorageError",
    "StorageConfig",
    "load_storage_config_from_env",
    "validate_storage_config",
]
