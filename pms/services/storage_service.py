"""
Storage Service - profile images in S3 (or any S3-compatible endpoint).

Uploads never raise: callers get {"success": True, "url", "path"} or
{"success": False, "error"} and decide how to report it.
"""

import logging
import uuid
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pms.core.config import Settings, get_settings
from pms.utils.file_upload import get_file_extension

logger = logging.getLogger(__name__)

PROFILE_IMAGE_PREFIX = "profile-images"


def path_from_url(url: str) -> str:
    """Object key of a stored profile image: the last two segments of its public URL."""
    return "/".join(url.rstrip("/").split("/")[-2:])


class StorageService:

    def __init__(self, settings: Optional[Settings] = None, client=None):
        self.settings = settings or get_settings()
        self.bucket = self.settings.s3_bucket
        if client is None:
            kwargs = {"region_name": self.settings.s3_region}
            if self.settings.s3_endpoint_url:
                kwargs["endpoint_url"] = self.settings.s3_endpoint_url
            client = boto3.client("s3", **kwargs)
        self._client = client

    def public_url(self, key: str) -> str:
        return f"{self.settings.public_storage_url}/{key}"

    def upload_profile_image(self, content: bytes, filename: str, user_id: str, content_type: str) -> dict:
        ext = get_file_extension(filename) or ".jpg"
        key = f"{PROFILE_IMAGE_PREFIX}/{user_id}-{uuid.uuid4().hex}{ext}"
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=content, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error("Profile image upload failed for %s: %s", key, e)
            return {"success": False, "error": "Failed to upload image to storage"}
        logger.info("Stored profile image %s", key)
        return {"success": True, "url": self.public_url(key), "path": key}

    def delete_file(self, path: str) -> bool:
        """Remove a stored object. A failed delete is logged, not raised."""
        try:
            self._client.delete_object(Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            logger.warning("Could not delete stored file %s: %s", path, e)
            return False
        return True

    def delete_by_url(self, url: Optional[str]) -> bool:
        if not url:
            return False
        return self.delete_file(path_from_url(url))

    def check(self) -> bool:
        """True when the bucket is reachable."""
        try:
            self._client.head_bucket(Bucket=self.bucket)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning("S3 bucket %s not reachable: %s", self.bucket, e)
            return False


def get_storage_service() -> StorageService:
    """FastAPI dependency; overridden in tests."""
    return StorageService()
