import datetime as dt
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.models.report import utc_today
from app.schemas.report import (
    CATEGORIES,
    CONTACT_METHODS,
    REPORT_TYPES,
    SORT_ORDERS,
    ClientFilter,
    EmailContact,
    ImageRef,
    InAppContact,
    PhoneContact,
    ReportDraft,
    ServerFilter,
)
from app.utils.errors import ValidationError


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def _raise_for(errors: List[dict]):
    fields = ", ".join(dict.fromkeys(e["field"] for e in errors))
    raise ValidationError(f"Missing or invalid fields: {fields}", errors)


def _from_pydantic(exc: PydanticValidationError) -> List[dict]:
    return [
        _error(".".join(str(p) for p in err["loc"]) or "body", err["msg"])
        for err in exc.errors()
    ]


def parse_report_date(value: Union[str, dt.date, None]) -> Optional[dt.date]:
    """Accepts YYYY-MM-DD or a full ISO timestamp (a trailing Z is allowed)."""
    if value is None or isinstance(value, dt.date):
        # datetime is a date subclass
        return value.date() if isinstance(value, dt.datetime) else value

    value = value.strip()
    if not value:
        return None

    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        pass

    try:
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError("Date not parseable", [_error("date", "Date not parseable")])


def build_contact(method: str, info: Optional[str]):
    if method == "email":
        return EmailContact(address=info)
    if method == "phone":
        return PhoneContact(number=info)
    # whatever was sent alongside "inapp" is dropped
    return InAppContact()


def validate_report_form(
    type: Optional[str],
    category: Optional[str],
    name: Optional[str],
    contact_method: Optional[str],
    contact_info: Optional[str] = None,
    description: Optional[str] = None,
    location: Optional[str] = None,
    landmark: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    date: Union[str, dt.date, None] = None,
    image_urls: Sequence[str] = (),
    image_count: Optional[int] = None,
    today: Optional[dt.date] = None,
) -> ReportDraft:
    """Validate raw report fields and resolve defaults.

    Every problem is collected before raising, so the caller gets the full
    list of missing/invalid fields at once. Nothing here performs I/O.
    """
    type = _clean(type)
    category = _clean(category)
    name = _clean(name)
    contact_method = _clean(contact_method)
    contact_info = _clean(contact_info)

    errors: List[dict] = []

    # required fields
    for field, value in (
        ("type", type),
        ("category", category),
        ("name", name),
        ("contactMethod", contact_method),
    ):
        if value is None:
            errors.append(_error(field, "Field required"))

    # closed enums
    if type is not None and type not in REPORT_TYPES:
        errors.append(_error("type", "Invalid item type"))
    if category is not None and category not in CATEGORIES:
        errors.append(_error("category", "Invalid category option"))
    if contact_method is not None and contact_method not in CONTACT_METHODS:
        errors.append(_error("contactMethod", "Invalid contact method"))

    if contact_method in ("email", "phone") and contact_info is None:
        errors.append(_error("contactInfo", f"Required when contact method is {contact_method}"))

    if (latitude is None) != (longitude is None):
        errors.append(_error("latitude", "Latitude and longitude must be given together"))

    count = len(image_urls) if image_count is None else image_count
    if count > settings.max_images_per_report:
        errors.append(_error("images", f"At most {settings.max_images_per_report} images are allowed"))

    try:
        parsed_date = parse_report_date(date)
    except ValidationError as e:
        errors.extend(e.errors)
        parsed_date = None

    if errors:
        _raise_for(errors)

    try:
        return ReportDraft(
            type=type,
            category=category,
            name=name,
            description=_clean(description),
            location=_clean(location),
            landmark=_clean(landmark),
            latitude=latitude,
            longitude=longitude,
            date=parsed_date or today or utc_today(),
            contact=build_contact(contact_method, contact_info),
            images=[ImageRef(url=url) for url in image_urls],
        )
    except PydanticValidationError as e:
        _raise_for(_from_pydantic(e))


def _as_set(values: Optional[Iterable[str]]):
    if not values:
        return None
    cleaned = {v.strip() for v in values if v and v.strip()}
    return frozenset(cleaned) or None


def validate_query_params(
    type: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    categories: Optional[Iterable[str]] = None,
    locations: Optional[Iterable[str]] = None,
    search_text: Optional[str] = None,
    min_days: Optional[int] = None,
    max_days: Optional[int] = None,
    sort: Optional[str] = None,
) -> Tuple[ServerFilter, ClientFilter, str]:
    errors: List[dict] = []

    date_range = None
    if min_days is not None or max_days is not None:
        low = 0 if min_days is None else min_days
        high = max_days if max_days is not None else 10 ** 6
        if low < 0 or high < low:
            errors.append(_error("dateRange", "Expected 0 <= minDays <= maxDays"))
        date_range = (low, high)

    sort = _clean(sort) or "newest"
    if sort not in SORT_ORDERS:
        errors.append(_error("sort", f"Expected one of {', '.join(SORT_ORDERS)}"))

    try:
        server_filter = ServerFilter(type=_clean(type), category=_clean(category))
    except PydanticValidationError as e:
        errors.extend(_from_pydantic(e))

    try:
        client_filter = ClientFilter(
            status=_clean(status),
            categories=_as_set(categories),
            locations=_as_set(locations),
            search_text=_clean(search_text),
            date_range_days=date_range,
        )
    except PydanticValidationError as e:
        errors.extend(_from_pydantic(e))

    if errors:
        _raise_for(errors)

    return server_filter, client_filter, sort
