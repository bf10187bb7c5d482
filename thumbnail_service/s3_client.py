"""
S3Client - Object store operations for originals and thumbnails.
"""

import logging
import os
from typing import Generator, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import ClientError

from .config import ServiceConfig, botocore_config
from .errors import (
    CONNECTION_ERRORS,
    StorageUnavailableError,
    classify_client_error,
    retry_transient,
)

BOTO_ERRORS = (ClientError,) + CONNECTION_ERRORS


class S3Client:
    """
    Wrapper for S3 operations.

    Provides methods for downloading originals, uploading thumbnails,
    building thumbnail URLs and listing originals.
    Failures surface as StorageUnavailableError (transient),
    ObjectMissingError or PermanentError.
    """

    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.tif', '.tiff', '.bmp', '.webp'}

    def __init__(self, config: ServiceConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 client.

        Args:
            config: Service configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        extra = {}
        if config.endpoint:
            extra = {'signature_version': 's3v4', 's3': {'addressing_style': 'path'}}

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            region_name=config.region,
            config=botocore_config(config, **extra),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    @classmethod
    def is_image_key(cls, key: str) -> bool:
        """True when the key carries an image file extension."""
        return os.path.splitext(key)[1].lower() in cls.IMAGE_EXTENSIONS

    def is_thumbnail_key(self, key: str) -> bool:
        """True when the key lies under the thumbnail prefix."""
        return bool(self.config.thumbnail_prefix) and key.startswith(self.config.thumbnail_prefix)

    def get_thumbnail_key(self, image_id: str, extension: str) -> str:
        """Deterministic thumbnail key for an image id, size and output extension."""
        return f"{self.config.thumbnail_prefix}{image_id}_{self.config.thumbnail_size}.{extension}"

    def thumbnail_bucket(self, original_bucket: str) -> str:
        """Bucket thumbnails are written to; defaults to the original's bucket."""
        return self.config.bucket or original_bucket

    def object_url(self, bucket: str, key: str) -> str:
        """Stable, unsigned URL for an object."""
        quoted = quote(key)
        if self.config.endpoint:
            return f"{self.config.endpoint.rstrip('/')}/{bucket}/{quoted}"
        return f"https://{bucket}.s3.{self.config.region}.amazonaws.com/{quoted}"

    def download_object(self, bucket: str, key: str) -> bytes:
        """
        Download an object from S3.

        Raises:
            ObjectMissingError: If the object does not exist
            StorageUnavailableError: If S3 stays unavailable after retries
        """
        try:
            return self._get_object(bucket, key)
        except BOTO_ERRORS as e:
            raise classify_client_error(e, StorageUnavailableError) from e

    def upload_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = 'application/octet-stream'
    ) -> None:
        """Upload an object to S3, overwriting any existing object at the key."""
        try:
            self._put_object(bucket, key, data, content_type)
        except BOTO_ERRORS as e:
            raise classify_client_error(e, StorageUnavailableError) from e

    def list_originals(self, bucket: str, prefix: str = '') -> Generator[dict, None, None]:
        """
        List original images under a prefix, skipping generated thumbnails.

        Yields:
            Dict with 'key' and 'size' for each image
        """
        paginator = self._client.get_paginator('list_objects_v2')
        page_iterator = paginator.paginate(Bucket=bucket, Prefix=prefix)

        count = 0
        try:
            for page in page_iterator:
                for obj in page.get('Contents', []):
                    key = obj['Key']
                    if self.is_thumbnail_key(key) or not self.is_image_key(key):
                        continue
                    count += 1
                    yield {'key': key, 'size': obj['Size']}
        except BOTO_ERRORS as e:
            raise classify_client_error(e, StorageUnavailableError) from e

        self.logger.debug(f"Listed {count} originals in s3://{bucket}/{prefix}")

    @retry_transient
    def _get_object(self, bucket: str, key: str) -> bytes:
        response = self._client.get_object(Bucket=bucket, Key=key)
        return response['Body'].read()

    @retry_transient
    def _put_object(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType=content_type
        )
