"""
Report persistence.

The repository is the only writer of the `reports` table. It takes
validated `ReportDraft`s, stamps id/created_at/updated_at, and turns every
SQLAlchemy failure into a `PersistenceError` so callers never see driver
exceptions.
"""

import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models.report import Report, utcnow
from app.schemas.report import ReportDraft, ServerFilter
from app.utils.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class ReportRepository:
    def __init__(self, session: Session):
        self.session = session

    def _save(self, report: Report) -> Report:
        try:
            self.session.add(report)
            self.session.commit()
            self.session.refresh(report)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Failed to save report %s", report.id)
            raise PersistenceError("Failed to save report") from e

        return report

    def create(self, record: ReportDraft) -> Report:
        contact_method, contact_info = record.contact.as_fields()
        now = utcnow()

        report = Report(
            id=uuid.uuid4(),
            created_at=now,
            updated_at=now,
            type=record.type,
            category=record.category,
            name=record.name,
            description=record.description,
            location=record.location,
            landmark=record.landmark,
            latitude=record.latitude,
            longitude=record.longitude,
            date=record.date,
            contact_method=contact_method,
            contact_info=contact_info,
            images=[img.model_dump() for img in record.images],
        )

        report = self._save(report)
        logger.info("Created %s report %s (%d images)", report.type, report.id, len(report.images))
        return report

    def list(self, filter: Optional[ServerFilter] = None) -> List[Report]:
        """All reports matching the equality filters, newest first.

        No pagination yet, this loads every matching row.
        """
        query = select(Report).order_by(Report.created_at.desc(), Report.id)

        if filter is not None:
            if filter.type:
                query = query.where(Report.type == filter.type)
            if filter.category:
                query = query.where(Report.category == filter.category)

        try:
            return list(self.session.exec(query).all())
        except SQLAlchemyError as e:
            logger.exception("Failed to list reports")
            raise PersistenceError("Failed to fetch reports") from e

    def get_by_id(self, report_id: Union[str, uuid.UUID]) -> Report:
        try:
            key = report_id if isinstance(report_id, uuid.UUID) else uuid.UUID(str(report_id))
        except ValueError:
            raise NotFoundError(f"Report {report_id} not found")

        try:
            report = self.session.get(Report, key)
        except SQLAlchemyError as e:
            logger.exception("Failed to fetch report %s", key)
            raise PersistenceError("Failed to fetch report") from e

        if not report:
            raise NotFoundError(f"Report {report_id} not found")

        return report

    def touch(self, report: Report) -> Report:
        """Save `report` with a fresh `updated_at`.

        Reports are never edited over HTTP yet. An edit or claim endpoint
        should save through here so `updated_at` moves with the change.
        """
        report.updated_at = utcnow()
        return self._save(report)
