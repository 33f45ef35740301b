"""Image uploads to S3 for event cover pictures."""
import logging
import os
import uuid
from functools import lru_cache
from typing import BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile, status
from slugify import slugify

from event_manager.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "gif"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}


def _file_size(fileobj: BinaryIO) -> int:
    fileobj.seek(0, os.SEEK_END)
    size = fileobj.tell()
    fileobj.seek(0)
    return size


def validate_image(file: UploadFile) -> str:
    """Check type and size of an uploaded image and return its extension."""
    filename = file.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_EXTENSIONS or (file.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image files (jpeg, jpg, png, gif) are allowed!",
        )
    if _file_size(file.file) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Image must be {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB or smaller",
        )
    return ext


class ImageStorage:
    """Stores uploaded images in an S3 bucket and returns their public URL."""

    def __init__(self, bucket: str, base_url: str, folder: str, client=None):
        self.bucket = bucket
        self.base_url = base_url
        self.folder = folder
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            )
        return self._client

    def object_key(self, filename: str, ext: str, owner: Optional[str] = None) -> str:
        base_name = filename.rsplit(".", 1)[0] if "." in filename else filename
        safe_name = slugify(base_name) or "image"
        owner_segment = slugify(owner) if owner else "anonymous"
        return f"{self.folder}/{owner_segment}/{safe_name}-{uuid.uuid4()}.{ext}"

    def upload(self, file: UploadFile, ext: str, owner: Optional[str] = None) -> str:
        """Upload the file and return its URL.

        Raises:
            HTTPException: 500 when the storage backend rejects the upload.
        """
        key = self.object_key(file.filename or "image", ext, owner)
        try:
            self.client.upload_fileobj(
                file.file,
                self.bucket,
                key,
                ExtraArgs={"ContentType": file.content_type},
            )
        except (BotoCoreError, ClientError):
            logger.exception("Error uploading %s to bucket %s", key, self.bucket)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to upload image",
            )
        logger.info("Uploaded image %s", key)
        return f"{self.base_url}{key}"


@lru_cache
def get_image_storage() -> ImageStorage:
    """FastAPI dependency for the configured S3 image storage."""
    return ImageStorage(
        bucket=settings.AWS_S3_BUCKET,
        base_url=settings.AWS_S3_BASE_URL,
        folder=settings.UPLOAD_FOLDER,
    )
