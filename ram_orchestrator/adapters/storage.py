"""Object storage adapter backed by an S3-compatible boto3 client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from .interfaces import ObjectStoragePort

logger = logging.getLogger(__name__)


def adapter_create_s3_client(
    engine: str,
    host: str,
    port: int,
    access_key: str,
    secret_key: str,
    region: str,
) -> Any:
    """Create a boto3 S3 client for the configured storage engine.

    Args:
        engine: Storage engine (`minio` or `s3`).
        host: Storage host used by `minio`.
        port: Storage port used by `minio`.
        access_key: Access key.
        secret_key: Secret key.
        region: Storage region.

    Returns:
        Any: boto3 S3 client.

    Raises:
        ValueError: Raised when the storage engine is unsupported.
    """

    if engine == "minio":
        return boto3.client(
            "s3",
            endpoint_url=f"http://{host}:{port}",
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
    if engine == "s3":
        return boto3.client(
            "s3",
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
    raise ValueError("Invalid storage engine. Use s3 or minio")


class S3ObjectStorageAdapter(ObjectStoragePort):
    """Blob read, write and delete against one bucket.

    boto3 calls block, so each one runs in a worker thread.
    """

    def __init__(self, client: Any, bucket: str):
        """Initialize object storage adapter.

        Args:
            client: boto3 S3 client.
            bucket: Bucket holding scenario files.

        Raises:
            ValueError: Raised when client is None or bucket is blank.
        """

        if client is None:
            raise ValueError("client must not be None")
        if not bucket.strip():
            raise ValueError("bucket must not be blank")
        self._client = client
        self._bucket = bucket.strip()

    async def adapter_remove_file(self, path: str) -> None:
        """Delete one stored object.

        Args:
            path: Object key.

        Raises:
            RuntimeError: Raised when the storage call fails.
        """

        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self._bucket, Key=path)
        except (Boto3Error, BotoCoreError, ClientError) as error:
            raise RuntimeError(f"failed to remove storage object {path}") from error
        logger.debug("removed storage object %s", path)

    async def adapter_download_file(self, path: str, local_path: str) -> None:
        """Download one stored object into a local file.

        Raises:
            RuntimeError: Raised when the storage call fails.
        """

        try:
            await asyncio.to_thread(self._client.download_file, self._bucket, path, local_path)
        except (Boto3Error, BotoCoreError, ClientError) as error:
            raise RuntimeError(f"failed to download storage object {path}") from error

    async def adapter_upload_file(self, local_path: str, path: str) -> None:
        """Upload one local file under a storage key.

        Raises:
            RuntimeError: Raised when the storage call fails.
        """

        try:
            await asyncio.to_thread(self._client.upload_file, local_path, self._bucket, path)
        except (Boto3Error, BotoCoreError, ClientError) as error:
            raise RuntimeError(f"failed to upload storage object {path}") from error
