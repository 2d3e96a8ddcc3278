from functools import lru_cache

from fastapi import Depends
from sqlmodel import Session

from app.config import settings
from app.db.db import get_session
from app.repositories.report_repository import ReportRepository
from app.services.query_service import ReportQueryService
from app.services.submission_service import ReportSubmissionService
from app.utils.s3_service import S3ImageStore


@lru_cache
def get_image_store() -> S3ImageStore:
    return S3ImageStore.from_settings(settings)


def get_report_repository(session: Session = Depends(get_session)) -> ReportRepository:
    return ReportRepository(session)


def get_submission_service(
    repo: ReportRepository = Depends(get_report_repository),
    image_store: S3ImageStore = Depends(get_image_store),
) -> ReportSubmissionService:
    return ReportSubmissionService(repo, image_store)


def get_query_service(
    repo: ReportRepository = Depends(get_report_repository),
) -> ReportQueryService:
    return ReportQueryService(repo)
