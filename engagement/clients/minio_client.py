"""
MinIO (S3-compatible) client for post images.

Images arrive from the client as a data URL (data:image/png;base64,...) or
as bare base64. They are stored as objects under posts/<uuid><ext> and the
post keeps the object's public URL.

Upload failures propagate: a post that asked for an image must not be
created without it. Delete failures are logged and swallowed, since an
already-missing object must not block deleting the post.
"""
import asyncio
import base64
import binascii
import logging
import mimetypes
import re
import uuid
from io import BytesIO
from typing import Optional
from urllib.parse import urlsplit

import boto3
from botocore.client import Config

from engagement.config import settings
from engagement.exceptions import AssetUploadFailed
from engagement.telemetry import ASSET_DELETE_FAILURES_TOTAL

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.-]+)*;base64,(?P<data>.*)$", re.S)
_DEFAULT_CONTENT_TYPE = "image/jpeg"


def decode_image_payload(payload: str) -> tuple[bytes, str]:
    """Split a data URL / bare base64 string into (bytes, content type)."""
    match = _DATA_URL_RE.match(payload.strip())
    if match:
        content_type = match.group("mime") or _DEFAULT_CONTENT_TYPE
        encoded = match.group("data")
    else:
        content_type = _DEFAULT_CONTENT_TYPE
        encoded = payload.strip()
    data = base64.b64decode(encoded, validate=True)
    if not data:
        raise ValueError("empty image payload")
    return data, content_type


class AssetStore:
    def __init__(self, s3, bucket: str, public_base_url: str) -> None:
        self._s3 = s3
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")

    def public_url(self, key: str) -> str:
        return f"{self._public_base_url}/{key}"

    def key_from_ref(self, asset_ref: str) -> str:
        """Recover the object key from a public URL (or pass a key through)."""
        if asset_ref.startswith(self._public_base_url + "/"):
            return asset_ref[len(self._public_base_url) + 1:]
        parts = urlsplit(asset_ref)
        if parts.scheme and parts.netloc:
            path = parts.path.lstrip("/")
            # Path-style URL: /<bucket>/<key>
            if path.startswith(self._bucket + "/"):
                return path[len(self._bucket) + 1:]
            return path
        return asset_ref.lstrip("/")

    async def upload(self, payload: str) -> str:
        """Store an image payload and return its public URL."""
        try:
            return await asyncio.to_thread(self._put, payload)
        except Exception as exc:
            logger.error("Image upload failed: %s", exc)
            raise AssetUploadFailed(str(exc)) from exc

    async def delete(self, asset_ref: str) -> None:
        """Best-effort delete of a previously uploaded asset."""
        key = self.key_from_ref(asset_ref)
        try:
            await asyncio.to_thread(self._s3.delete_object, Bucket=self._bucket, Key=key)
            logger.debug("Deleted asset from MinIO: %s", key)
        except Exception as exc:
            ASSET_DELETE_FAILURES_TOTAL.inc()
            logger.warning("Failed to delete asset %s: %s", key, exc)

    def _put(self, payload: str) -> str:
        try:
            data, content_type = decode_image_payload(payload)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"invalid image payload: {exc}") from exc
        ext = mimetypes.guess_extension(content_type) or ".jpg"
        key = f"posts/{uuid.uuid4()}{ext}"
        self._s3.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=BytesIO(data),
            ContentType=content_type,
        )
        logger.debug("Uploaded image to MinIO: %s (%d bytes)", key, len(data))
        return self.public_url(key)


_store: Optional[AssetStore] = None


def init_minio() -> None:
    """Create the S3 client and ensure the media bucket exists."""
    global _store
    scheme = "https" if settings.minio_use_ssl else "http"
    s3 = boto3.client(
        "s3",
        endpoint_url=f"{scheme}://{settings.minio_endpoint}",
        aws_access_key_id=settings.minio_access_key,
        aws_secret_access_key=settings.minio_secret_key,
        config=Config(signature_version="s3v4"),
        region_name="us-east-1",
    )

    # Create bucket if missing
    existing = [b["Name"] for b in s3.list_buckets().get("Buckets", [])]
    if settings.minio_bucket not in existing:
        s3.create_bucket(Bucket=settings.minio_bucket)
        logger.info("Created MinIO bucket '%s'", settings.minio_bucket)
    else:
        logger.info("MinIO bucket '%s' already exists", settings.minio_bucket)

    _store = AssetStore(s3, settings.minio_bucket, settings.asset_base_url)


def get_asset_store() -> AssetStore:
    if _store is None:
        raise RuntimeError("MinIO client not initialised — call init_minio() at startup")
    return _store
