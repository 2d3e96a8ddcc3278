import asyncio
import io
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, ImageOps, UnidentifiedImageError

from app.config import Settings
from app.utils.errors import UploadError

logger = logging.getLogger(__name__)


def build_key(folder: str, original_name: str, ext: str) -> str:
    base = os.path.splitext(os.path.basename(original_name or ""))[0] or "image"

    # timestamp for humans, uuid so concurrent uploads of one filename never collide
    ts = int(datetime.now(timezone.utc).timestamp())
    return f"{folder}/{base}-{ts}-{uuid.uuid4().hex[:8]}.{ext}"


class S3ImageStore:
    """Stores report images in an S3-compatible bucket.

    boto3 is blocking, so every call runs in a worker thread and is bounded
    by `timeout` seconds. Nothing is retried here.
    """

    def __init__(
        self,
        client,
        bucket: str,
        folder: str = "lost-and-found",
        public_url_base: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
        timeout: float = 15.0,
        max_width: int = 1400,
        quality: int = 80,
    ):
        self.client = client
        self.bucket = bucket
        self.folder = folder
        self.public_url_base = public_url_base.rstrip("/") if public_url_base else None
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.region = region
        self.timeout = timeout
        self.max_width = max_width
        self.quality = quality

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ImageStore":
        client = boto3.client(
            service_name="s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.s3_region,
        )
        return cls(
            client,
            bucket=settings.s3_bucket or "",
            folder=settings.upload_folder,
            public_url_base=settings.s3_public_url_base,
            endpoint_url=settings.s3_endpoint_url,
            region=settings.s3_region,
            timeout=settings.external_call_timeout,
        )

    def public_url(self, key: str) -> str:
        if self.public_url_base:
            return f"{self.public_url_base}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = self.public_url("")
        if url.startswith(prefix):
            return url[len(prefix):] or None
        return None

    def encode(self, data: bytes) -> Tuple[io.BytesIO, str, str]:
        """Re-encode an upload as WebP (JPEG if WebP is unavailable), at most `max_width` wide.

        Phone photos are rotated per their EXIF tag and transparency is
        flattened onto white, so what is stored is what the reporter saw.
        """
        img = Image.open(io.BytesIO(data))
        img = ImageOps.exif_transpose(img)

        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.getchannel("A"))
            img = background
        else:
            img = img.convert("RGB")

        if img.width > self.max_width:
            img = img.resize((self.max_width, int(img.height * self.max_width / img.width)), Image.LANCZOS)

        buffer = io.BytesIO()
        try:
            img.save(buffer, format="WEBP", quality=self.quality, method=6)
            ext, mime = "webp", "image/webp"
        except (OSError, KeyError) as e:
            logger.warning("WebP encoding failed, falling back to JPEG: %s", e)

            # same quality setting for both formats
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=self.quality, optimize=True)
            ext, mime = "jpg", "image/jpeg"

        buffer.seek(0)
        return buffer, ext, mime

    def _put(self, data: bytes, filename: str) -> str:
        buffer, ext, mime = self.encode(data)
        key = build_key(self.folder, filename, ext)

        self.client.upload_fileobj(buffer, self.bucket, key, ExtraArgs={"ContentType": mime})

        return key

    async def upload(self, data: bytes, content_type: str, filename: str) -> str:
        if not self.bucket:
            raise UploadError("Image storage is not configured")

        try:
            key = await asyncio.wait_for(asyncio.to_thread(self._put, data, filename), self.timeout)
        except asyncio.TimeoutError as e:
            raise UploadError(f"Upload of {filename} timed out after {self.timeout}s") from e
        except (UnidentifiedImageError, Image.DecompressionBombError) as e:
            raise UploadError(f"{filename} ({content_type}) is not a readable image") from e
        except (BotoCoreError, ClientError, OSError) as e:
            raise UploadError(f"Failed to upload {filename}: {e}") from e

        url = self.public_url(key)
        logger.info("Uploaded %s (%s, %d bytes) as %s", filename, content_type, len(data), key)
        return url

    async def delete(self, url: str) -> None:
        key = self.key_from_url(url)
        if key is None:
            raise UploadError(f"{url} does not belong to bucket {self.bucket}")

        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key),
                self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise UploadError(f"Delete of {key} timed out after {self.timeout}s") from e
        except (BotoCoreError, ClientError) as e:
            raise UploadError(f"Failed to delete {key}: {e}") from e

        logger.info("Deleted orphaned image %s", key)
