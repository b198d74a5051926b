"""
AWS S3 adapter for frame storage.

Uploads frame images to a bucket (or any S3-compatible endpoint) and
builds their public URLs.
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import BlobStoreAdapter

logger = logging.getLogger("visual_worker")


class S3BlobStoreAdapter(BlobStoreAdapter):
    """AWS S3 implementation of the blob store"""

    def __init__(self, bucket: str, region: str = "us-east-1", prefix: str = "video-frames/",
                 endpoint_url: Optional[str] = None, public_base_url: Optional[str] = None):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self.s3 = None

    def connect(self):
        """Initialize S3 client"""
        try:
            self.s3 = boto3.client('s3', region_name=self.region, endpoint_url=self.endpoint_url)
            logger.info(f"S3 blob store connected to bucket: {self.bucket}")
        except Exception as e:
            logger.error(f"Failed to connect to S3: {e}")
            raise

    def _key(self, path: str) -> str:
        return f"{self.prefix}{path.lstrip('/')}"

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Put an object, replacing any previous version"""
        key = self._key(path)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type
            )
            logger.debug(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{key}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading {key} to S3: {e}")
            raise

    def public_url(self, path: str) -> str:
        """Public URL of an object under the configured prefix"""
        key = self._key(path)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def close(self):
        """Close S3 connection"""
        self.s3 = None
        logger.info("S3 blob store connection closed")
