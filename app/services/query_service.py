import datetime as dt
from collections import Counter
from typing import List, Optional, Protocol

from app.models.report import Report, utc_today
from app.schemas.report import (
    CATEGORIES,
    ClientFilter,
    MapPin,
    ReportStats,
    ServerFilter,
    as_utc,
)


class ReportSource(Protocol):
    """Read-only view of stored reports (the repository, or a test fixture)."""

    def list(self, filter: Optional[ServerFilter] = None) -> List[Report]: ...


def _matches(report: Report, f: ClientFilter, today: dt.date) -> bool:
    if f.search_text:
        needle = f.search_text.casefold()
        haystack = (report.name, report.category, report.location or "")
        if not any(needle in value.casefold() for value in haystack):
            return False

    if f.categories and report.category not in f.categories:
        return False

    if f.locations:
        wanted = {loc.casefold() for loc in f.locations}
        if (report.location or "").casefold() not in wanted:
            return False

    # reports have no claim lifecycle, so "claimed" never matches
    if f.status and f.status != "all" and report.type != f.status:
        return False

    if f.date_range_days:
        low, high = f.date_range_days
        age = (today - report.date).days
        if not low <= age <= high:
            return False

    return True


def sort_reports(reports: List[Report], sort: str = "newest") -> List[Report]:
    # two passes: id first so ties stay deterministic after the stable main sort
    by_id = sorted(reports, key=lambda r: str(r.id))

    if sort == "oldest":
        return sorted(by_id, key=lambda r: (r.date, as_utc(r.created_at)))
    if sort == "a-z":
        return sorted(by_id, key=lambda r: r.name.casefold())
    if sort == "z-a":
        return sorted(by_id, key=lambda r: r.name.casefold(), reverse=True)

    return sorted(by_id, key=lambda r: (r.date, as_utc(r.created_at)), reverse=True)


class ReportQueryService:
    def __init__(self, source: ReportSource):
        self.source = source

    def query(
        self,
        server_filter: Optional[ServerFilter] = None,
        client_filter: Optional[ClientFilter] = None,
        sort: str = "newest",
        today: Optional[dt.date] = None,
    ) -> List[Report]:
        """Fetch with equality filters, then narrow and sort in memory.

        An empty result is just an empty list.
        """
        reports = self.source.list(server_filter or ServerFilter())

        if client_filter is not None:
            today = today or utc_today()
            reports = [r for r in reports if _matches(r, client_filter, today)]

        return sort_reports(reports, sort)

    def stats(self, today: Optional[dt.date] = None) -> ReportStats:
        today = today or utc_today()
        reports = self.source.list(ServerFilter())

        types = Counter(r.type for r in reports)
        categories = Counter(r.category for r in reports)
        this_month = sum(
            1
            for r in reports
            if (as_utc(r.created_at).year, as_utc(r.created_at).month) == (today.year, today.month)
        )

        return ReportStats(
            total=len(reports),
            lost=types["lost"],
            found=types["found"],
            this_month=this_month,
            by_category={c: categories[c] for c in CATEGORIES},
        )

    def map_pins(self, server_filter: Optional[ServerFilter] = None) -> List[MapPin]:
        return [
            MapPin(
                id=str(r.id),
                type=r.type,
                name=r.name,
                category=r.category,
                latitude=r.latitude,
                longitude=r.longitude,
                location=r.location,
                landmark=r.landmark,
            )
            for r in self.source.list(server_filter or ServerFilter())
            if r.latitude is not None and r.longitude is not None
        ]
