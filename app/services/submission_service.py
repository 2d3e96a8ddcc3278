"""
Report submission.

Turns a raw draft (form fields + up to three image files) into a persisted
Report:

1. validate everything locally, no I/O on failure
2. upload all images concurrently, keeping input order
3. resolve date (default today) and contact info (NULL for "inapp")
4. create the report through the repository

Uploads and the report write are not transactional. When anything after
the first upload fails, the images already uploaded for this submission
are deleted again, best-effort: a failed delete is logged and the original
error is the one raised.
"""

import asyncio
import datetime as dt
import logging
from typing import List, Optional, Protocol

from app.models.report import Report
from app.schemas.report import ImageFile, ImageRef, ReportCreateRequest, ReportDraft, SubmissionDraft
from app.utils.errors import UploadError, ValidationError
from app.utils.form_validator import validate_report_form

logger = logging.getLogger(__name__)


class ImageStore(Protocol):
    async def upload(self, data: bytes, content_type: str, filename: str) -> str: ...

    async def delete(self, url: str) -> None: ...


class ReportWriter(Protocol):
    def create(self, record: ReportDraft) -> Report: ...


class ReportSubmissionService:
    def __init__(self, repo: ReportWriter, image_store: ImageStore):
        self.repo = repo
        self.image_store = image_store

    async def submit(self, draft: SubmissionDraft, today: Optional[dt.date] = None) -> Report:
        record = validate_report_form(
            type=draft.type,
            category=draft.category,
            name=draft.name,
            contact_method=draft.contact_method,
            contact_info=draft.contact_info,
            description=draft.description,
            location=draft.location,
            landmark=draft.landmark,
            latitude=draft.latitude,
            longitude=draft.longitude,
            date=draft.date,
            image_count=len(draft.images),
            today=today,
        )

        empty = [
            {"field": f"images.{i}", "message": "Image file is empty"}
            for i, image in enumerate(draft.images)
            if not image.data
        ]
        if empty:
            raise ValidationError("Missing or invalid fields: images", empty)

        urls = await self._upload_all(draft.images)
        record = record.model_copy(update={"images": [ImageRef(url=url) for url in urls]})

        try:
            return self.repo.create(record)
        except Exception:
            await self._discard(urls)
            raise

    def create_from_urls(self, payload: ReportCreateRequest, today: Optional[dt.date] = None) -> Report:
        """Create a report whose images were already uploaded via /api/upload."""
        record = validate_report_form(
            type=payload.type,
            category=payload.category,
            name=payload.name,
            contact_method=payload.contact_method,
            contact_info=payload.contact_info,
            description=payload.description,
            location=payload.location,
            landmark=payload.landmark,
            latitude=payload.latitude,
            longitude=payload.longitude,
            date=payload.date,
            image_urls=payload.image_urls,
            today=today,
        )
        return self.repo.create(record)

    async def _upload_all(self, images: List[ImageFile]) -> List[str]:
        if not images:
            return []

        results = await asyncio.gather(
            *(self.image_store.upload(img.data, img.content_type, img.filename) for img in images),
            return_exceptions=True,
        )

        uploaded = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, BaseException)]

        if failures:
            await self._discard(uploaded)
            first = failures[0]
            if isinstance(first, UploadError):
                raise first
            raise UploadError(f"Image upload failed: {first}") from first

        return list(results)

    async def _discard(self, urls: List[str]):
        for url in urls:
            try:
                await self.image_store.delete(url)
            except UploadError as e:
                logger.warning("Could not remove orphaned image %s: %s", url, e)
