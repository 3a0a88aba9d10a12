"""
Media CDN clients: Cloudinary, S3-compatible buckets, and in-memory testing.

Uploads go straight from the browser to the CDN. The server only hands out
an upload target (``upload_ticket``) and deletes assets by public id.
"""

from __future__ import annotations

import logging
import mimetypes
import posixpath
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
import cloudinary.uploader
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from cloudinary.exceptions import Error as CloudinaryError

from showcase.errors import MediaServiceError, ValidationError
from showcase.types import MediaType

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ("jpg", "jpeg", "png", "gif", "webp", "mp4", "mov", "avi")
MAX_UPLOAD_BYTES = 10_000_000
TICKET_EXPIRES_IN = 900


@dataclass
class UploadTicket:
    """Where and how the browser should post the file."""

    url: str
    fields: dict = field(default_factory=dict)
    media_type: str = MediaType.IMAGE.value
    public_id: Optional[str] = None
    # Set when the CDN response will not carry the final URL itself.
    public_url: Optional[str] = None


def classify_upload(filename: str, content_type: str | None, size: int | None = None) -> str:
    """Return the media type for an upload or raise ``ValidationError``."""
    extension = posixpath.splitext(filename or "")[1].lower().lstrip(".")
    if extension not in ALLOWED_FORMATS:
        raise ValidationError(
            "Unsupported file format. Allowed: " + ", ".join(ALLOWED_FORMATS)
        )
    if size is not None and size > MAX_UPLOAD_BYTES:
        raise ValidationError("File is too large (max 10MB)")
    content_type = content_type or mimetypes.guess_type(filename)[0] or ""
    if content_type.startswith("video/"):
        return MediaType.VIDEO.value
    if content_type.startswith("image/"):
        return MediaType.IMAGE.value
    raise ValidationError("contentType must be an image or video type")


class MediaClient(Protocol):
    """Defines the operations the API needs from the media CDN."""

    def upload_ticket(
        self, filename: str, content_type: str | None, size: int | None = None
    ) -> UploadTicket:
        ...

    def delete(self, public_id: str) -> bool:
        ...


@dataclass
class InMemoryMediaClient:
    """Test double for media interactions."""

    base_url: str = "https://media.example.test"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def upload_ticket(
        self, filename: str, content_type: str | None, size: int | None = None
    ) -> UploadTicket:
        media_type = classify_upload(filename, content_type, size)
        public_id = f"uploads/{uuid.uuid4().hex}"
        # Stand-in for the object the browser is about to post.
        self.stored_objects[public_id] = filename
        return UploadTicket(
            url=f"{self.base_url}/upload",
            fields={"key": public_id},
            media_type=media_type,
            public_id=public_id,
            public_url=f"{self.base_url}/{public_id}",
        )

    def delete(self, public_id: str) -> bool:
        return self.stored_objects.pop(public_id, None) is not None


@dataclass
class CloudinaryMediaClient:
    """
    Cloudinary client using an unsigned upload preset for browser uploads.
    """

    cloud_name: str
    api_key: str
    api_secret: str
    upload_preset: str = "portfolio_resources"
    folder: str = "portfolio/resources"

    @property
    def _credentials(self) -> dict:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
        }

    def upload_ticket(
        self, filename: str, content_type: str | None, size: int | None = None
    ) -> UploadTicket:
        media_type = classify_upload(filename, content_type, size)
        return UploadTicket(
            url=f"https://api.cloudinary.com/v1_1/{self.cloud_name}/auto/upload",
            fields={"upload_preset": self.upload_preset, "folder": self.folder},
            media_type=media_type,
        )

    def delete(self, public_id: str) -> bool:
        # destroy() defaults to images; videos live under their own type.
        try:
            for resource_type in (MediaType.IMAGE.value, MediaType.VIDEO.value):
                result = cloudinary.uploader.destroy(
                    public_id,
                    resource_type=resource_type,
                    invalidate=True,
                    **self._credentials,
                )
                outcome = result.get("result")
                if outcome == "ok":
                    return True
                if outcome != "not found":
                    break
        except CloudinaryError as e:
            logger.error("Cloudinary delete failed for %s: %s", public_id, e)
            raise MediaServiceError() from e
        logger.warning("Cloudinary did not confirm deletion of %s: %s", public_id, outcome)
        return False


@dataclass
class S3MediaClient:
    """
    S3-compatible media bucket; browsers upload with a presigned POST.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""
    folder: str = "portfolio/resources"

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def _public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def upload_ticket(
        self, filename: str, content_type: str | None, size: int | None = None
    ) -> UploadTicket:
        media_type = classify_upload(filename, content_type, size)
        extension = posixpath.splitext(filename)[1].lower()
        key = f"{self.folder}/{uuid.uuid4().hex}{extension}"
        content_type = content_type or mimetypes.guess_type(filename)[0]
        try:
            post = self._client.generate_presigned_post(
                Bucket=self.bucket,
                Key=key,
                Fields={"Content-Type": content_type},
                Conditions=[
                    {"Content-Type": content_type},
                    ["content-length-range", 1, MAX_UPLOAD_BYTES],
                ],
                ExpiresIn=TICKET_EXPIRES_IN,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to presign upload for %s: %s", key, e)
            raise MediaServiceError("Failed to prepare upload") from e
        return UploadTicket(
            url=post["url"],
            fields=post["fields"],
            media_type=media_type,
            public_id=key,
            public_url=self._public_url(key),
        )

    def delete(self, public_id: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=public_id)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            logger.error("S3 lookup failed for %s: %s", public_id, e)
            raise MediaServiceError() from e
        except BotoCoreError as e:
            raise MediaServiceError() from e
        try:
            self._client.delete_object(Bucket=self.bucket, Key=public_id)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 delete failed for %s: %s", public_id, e)
            raise MediaServiceError() from e
        return True


class UnconfiguredMediaClient:
    """Used when no CDN credentials are configured."""

    def upload_ticket(
        self, filename: str, content_type: str | None, size: int | None = None
    ) -> UploadTicket:
        raise MediaServiceError("Media service is not configured")

    def delete(self, public_id: str) -> bool:
        raise MediaServiceError("Media service is not configured")
