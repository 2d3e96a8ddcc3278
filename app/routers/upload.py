from typing import Optional
from fastapi import APIRouter, Depends, File, UploadFile

from app.config import settings
from app.utils.dependencies import get_image_store
from app.utils.errors import ValidationError
from app.utils.s3_service import S3ImageStore


router = APIRouter()


@router.post("")
async def upload_image(
    file: Optional[UploadFile] = File(None),
    image_store: S3ImageStore = Depends(get_image_store),
):
    if file is None:
        raise ValidationError("No file provided", [{"field": "file", "message": "Field required"}])

    raw_bytes = await file.read()

    if not raw_bytes:
        raise ValidationError("No file provided", [{"field": "file", "message": "File is empty"}])

    if len(raw_bytes) > settings.max_upload_bytes:
        raise ValidationError(
            f"Image exceeds {settings.max_upload_size_mb}MB limit",
            [{"field": "file", "message": "File is too large"}],
        )

    url = await image_store.upload(
        raw_bytes,
        file.content_type or "application/octet-stream",
        file.filename or "image",
    )

    return {"success": True, "url": url}
