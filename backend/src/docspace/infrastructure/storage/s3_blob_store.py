"""S3 Blob Store - implementation of BlobStorePort using boto3.

All logical stores live in a single bucket: store ``s`` and key ``k``
map to the object ``s/k``. Metadata travels as S3 user metadata, with
values percent-encoded because S3 only accepts ASCII there.
"""

import logging
import re
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from ...domain.storage.ports import BlobStorePort, StoredBlob, BlobEntry
from .storage_config import StorageConfig, validate_storage_config

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def metadata_key(name: str) -> str:
    """S3 returns user metadata keys lowercased; store them as ``lower-kebab``."""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", name).replace("_", "-").lower()


class S3BlobStore(BlobStorePort):
    """S3-compatible blob store.

    Example:
        store = S3BlobStore.from_config(load_storage_config_from_env())
        store.put("user-files", key, data, content_type="application/pdf")
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        client=None,
    ):
        try:
            self.s3_client = client or boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        self.bucket_name = bucket_name
        self.region = region

        logger.info(
            f"Initialized S3 blob store: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    @classmethod
    def from_config(cls, config: StorageConfig) -> "S3BlobStore":
        validate_storage_config(config)
        return cls(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )

    @staticmethod
    def object_key(store: str, key: str) -> str:
        return f"{store}/{key}"

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return
        except ClientError as e:
            if _error_code(e) not in ("404", "NoSuchBucket"):
                raise StorageError(f"Failed to check bucket: {_error_code(e)}")

        try:
            if self.region == "us-east-1":
                self.s3_client.create_bucket(Bucket=self.bucket_name)
            else:
                self.s3_client.create_bucket(
                    Bucket=self.bucket_name,
                    CreateBucketConfiguration={"LocationConstraint": self.region},
                )
            logger.info(f"Created bucket: {self.bucket_name}")
        except ClientError as e:
            raise StorageError(f"Failed to create bucket: {_error_code(e)}")

    def put(
        self,
        store: str,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Optional[str]:
        object_key = self.object_key(store, key)
        params = {
            "Bucket": self.bucket_name,
            "Key": object_key,
            "Body": data,
            "Metadata": {metadata_key(k): quote(str(v), safe="") for k, v in (metadata or {}).items()},
        }
        if content_type:
            params["ContentType"] = content_type

        try:
            response = self.s3_client.put_object(**params)
        except ClientError as e:
            logger.error(f"S3 upload failed: key={object_key}, error={_error_code(e)}")
            raise StorageError(f"Failed to upload blob: {_error_code(e)}")

        logger.info(f"Stored blob: key={object_key}, size={len(data)}")
        return (response.get("ETag") or "").strip('"') or None

    def get(self, store: str, key: str) -> Optional[StoredBlob]:
        object_key = self.object_key(store, key)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=object_key)
        except ClientError as e:
            if _error_code(e) in ("NoSuchKey", "404"):
                return None
            logger.error(f"S3 retrieval failed: key={object_key}, error={_error_code(e)}")
            raise StorageError(f"Failed to retrieve blob: {_error_code(e)}")

        return StoredBlob(
            data=response["Body"].read(),
            metadata={k: unquote(v) for k, v in response.get("Metadata", {}).items()},
            content_type=response.get("ContentType"),
        )

    def delete(self, store: str, key: str) -> bool:
        if not self.exists(store, key):
            return False

        object_key = self.object_key(store, key)
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=object_key)
        except ClientError as e:
            logger.error(f"S3 deletion failed: key={object_key}, error={_error_code(e)}")
            raise StorageError(f"Failed to delete blob: {_error_code(e)}")

        logger.info(f"Deleted blob: key={object_key}")
        return True

    def exists(self, store: str, key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=self.object_key(store, key))
            return True
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check blob: {_error_code(e)}")

    def list(self, store: str, prefix: str = "") -> List[BlobEntry]:
        store_prefix = f"{store}/"
        entries = []
        paginator = self.s3_client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=store_prefix + prefix):
                for item in page.get("Contents", []):
                    entries.append(
                        BlobEntry(
                            key=item["Key"][len(store_prefix):],
                            size_bytes=item["Size"],
                            last_modified=item.get("LastModified"),
                        )
                    )
        except ClientError as e:
            raise StorageError(f"Failed to list blobs: {_error_code(e)}")
        return entries

    def check_health(self) -> bool:
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return True
        except ClientError as e:
            logger.warning(f"Blob store health check failed: {_error_code(e)}")
            return False
