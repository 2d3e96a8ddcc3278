from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.config import settings
from app.schemas.report import ImageFile, ReportCreateRequest, SubmissionDraft, report_to_dict
from app.repositories.report_repository import ReportRepository
from app.services.query_service import ReportQueryService
from app.services.submission_service import ReportSubmissionService
from app.utils.dependencies import get_query_service, get_report_repository, get_submission_service
from app.utils.errors import ValidationError
from app.utils.form_validator import validate_query_params


router = APIRouter()


@router.post("", status_code=201)
async def create_report(
    payload: ReportCreateRequest,
    service: ReportSubmissionService = Depends(get_submission_service),
):
    report = service.create_from_urls(payload)

    return {
        "success": True,
        "message": "Report created successfully",
        "reportId": str(report.id),
    }


@router.post("/submit", status_code=201)
async def submit_report(
    type: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    landmark: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    date: Optional[str] = Form(None),
    contact_method: Optional[str] = Form(None, alias="contactMethod"),
    contact_info: Optional[str] = Form(None, alias="contactInfo"),
    files: Optional[List[UploadFile]] = File(None),
    service: ReportSubmissionService = Depends(get_submission_service),
):
    # an empty file input still posts one part with no name and no bytes
    parts = [f for f in files or [] if f.filename or f.size]

    if len(parts) > settings.max_images_per_report:
        raise ValidationError(
            f"At most {settings.max_images_per_report} images are allowed",
            [{"field": "images", "message": f"Got {len(parts)} images"}],
        )

    # read images into memory, size limit is enforced here, not in the store
    images = []
    for upload in parts:
        raw_bytes = await upload.read()

        if len(raw_bytes) > settings.max_upload_bytes:
            raise ValidationError(
                f"Image exceeds {settings.max_upload_size_mb}MB limit",
                [{"field": "files", "message": f"{upload.filename} is too large"}],
            )

        images.append(
            ImageFile(
                data=raw_bytes,
                content_type=upload.content_type or "application/octet-stream",
                filename=upload.filename or "image",
            )
        )

    draft = SubmissionDraft(
        type=type,
        category=category,
        name=name,
        description=description,
        location=location,
        landmark=landmark,
        latitude=latitude,
        longitude=longitude,
        date=date,
        contact_method=contact_method,
        contact_info=contact_info,
        images=images,
    )

    report = await service.submit(draft)

    return {
        "success": True,
        "message": "Report created successfully",
        "reportId": str(report.id),
    }


@router.get("")
async def get_reports(
    type: Optional[str] = None,
    category: Optional[str] = None,
    repo: ReportRepository = Depends(get_report_repository),
):
    server_filter, _, _ = validate_query_params(type=type, category=category)

    # repository order: createdAt descending
    reports = repo.list(server_filter)

    return {"reports": [report_to_dict(r) for r in reports]}


@router.get("/search")
async def search_reports(
    type: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    categories: Optional[List[str]] = Query(None),
    locations: Optional[List[str]] = Query(None),
    q: Optional[str] = None,
    min_days: Optional[int] = Query(None, alias="minDays"),
    max_days: Optional[int] = Query(None, alias="maxDays"),
    sort: Optional[str] = None,
    service: ReportQueryService = Depends(get_query_service),
):
    server_filter, client_filter, sort = validate_query_params(
        type=type,
        category=category,
        status=status,
        categories=categories,
        locations=locations,
        search_text=q,
        min_days=min_days,
        max_days=max_days,
        sort=sort,
    )

    reports = service.query(server_filter, client_filter, sort)

    return {
        "reports": [report_to_dict(r) for r in reports],
        "count": len(reports),
    }


@router.get("/stats")
async def get_report_stats(service: ReportQueryService = Depends(get_query_service)):
    return service.stats()


@router.get("/map")
async def get_map_pins(
    type: Optional[str] = None,
    category: Optional[str] = None,
    service: ReportQueryService = Depends(get_query_service),
):
    server_filter, _, _ = validate_query_params(type=type, category=category)

    return {"pins": service.map_pins(server_filter)}


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    repo: ReportRepository = Depends(get_report_repository),
):
    return {"report": report_to_dict(repo.get_by_id(report_id))}
