"""
Runtime configuration.

`python-dotenv` reads a local `.env` during development; everything else
imports `settings` from here instead of calling os.getenv directly, so
tests can monkeypatch a single object.

Environment variables:
- `DATABASE_URL` - SQLAlchemy URL (sqlite for local runs, postgres in prod).
- `CORS_ALLOW_ORIGINS` - comma-separated list of allowed origins.
- `S3_BUCKET`, `S3_ENDPOINT_URL`, `S3_REGION`, `AWS_ACCESS_KEY_ID`,
  `AWS_SECRET_ACCESS_KEY` - object storage for report images.
- `S3_PUBLIC_URL_BASE` - if set, image URLs are `<base>/<key>`.
- `MAX_UPLOAD_SIZE_MB` - per-image limit enforced at the HTTP boundary.
- `EXTERNAL_CALL_TIMEOUT` - seconds allowed for one storage or database call.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./campusfinder.db")
    cors_origins: List[str] = _split_origins(os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000"))

    s3_bucket: Optional[str] = os.getenv("S3_BUCKET") or None
    s3_endpoint_url: Optional[str] = os.getenv("S3_ENDPOINT_URL") or None
    s3_region: str = os.getenv("S3_REGION", "us-east-1")
    aws_access_key_id: Optional[str] = os.getenv("AWS_ACCESS_KEY_ID") or None
    aws_secret_access_key: Optional[str] = os.getenv("AWS_SECRET_ACCESS_KEY") or None
    s3_public_url_base: Optional[str] = os.getenv("S3_PUBLIC_URL_BASE") or None
    upload_folder: str = os.getenv("UPLOAD_FOLDER", "lost-and-found")

    max_upload_size_mb: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "5"))
    max_images_per_report: int = 3
    external_call_timeout: float = float(os.getenv("EXTERNAL_CALL_TIMEOUT", "15"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


settings = Settings()
