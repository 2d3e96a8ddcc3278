import datetime as dt
from dataclasses import dataclass, field
from typing import Annotated, Dict, FrozenSet, List, Literal, Optional, Tuple, Union, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.report import Report


ReportType = Literal["lost", "found"]
Category = Literal["electronics", "clothing", "accessories", "books", "ids", "other"]
ContactMethod = Literal["email", "phone", "inapp"]
StatusFilter = Literal["all", "lost", "found", "claimed"]
SortOrder = Literal["newest", "oldest", "a-z", "z-a"]

REPORT_TYPES: Tuple[str, ...] = get_args(ReportType)
CATEGORIES: Tuple[str, ...] = get_args(Category)
CONTACT_METHODS: Tuple[str, ...] = get_args(ContactMethod)
SORT_ORDERS: Tuple[str, ...] = get_args(SortOrder)


# Contact details
class EmailContact(BaseModel):
    method: Literal["email"] = "email"
    address: str = Field(min_length=1)

    def as_fields(self) -> Tuple[str, Optional[str]]:
        return self.method, self.address


class PhoneContact(BaseModel):
    method: Literal["phone"] = "phone"
    number: str = Field(min_length=1)

    def as_fields(self) -> Tuple[str, Optional[str]]:
        return self.method, self.number


class InAppContact(BaseModel):
    method: Literal["inapp"] = "inapp"

    def as_fields(self) -> Tuple[str, Optional[str]]:
        return self.method, None


Contact = Annotated[
    Union[EmailContact, PhoneContact, InAppContact],
    Field(discriminator="method"),
]


class ImageRef(BaseModel):
    url: str = Field(min_length=1)


class ReportDraft(BaseModel):
    """A fully validated report, ready to be persisted.

    Only `form_validator` builds these; the repository trusts them.
    """

    model_config = ConfigDict(frozen=True)

    type: ReportType
    category: Category
    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    landmark: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    date: dt.date
    contact: Contact
    images: List[ImageRef] = Field(default_factory=list, max_length=3)


# Request bodies
class ReportCreateRequest(BaseModel):
    """JSON body of POST /api/reports.

    Everything is optional here so that missing fields are reported together
    by the validator instead of one at a time.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Optional[str] = None
    category: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    landmark: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    date: Optional[str] = None
    contact_method: Optional[str] = None
    contact_info: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)


@dataclass
class ImageFile:
    data: bytes
    content_type: str
    filename: str


@dataclass
class SubmissionDraft:
    type: Optional[str] = None
    category: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    landmark: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    date: Optional[Union[str, dt.date]] = None
    contact_method: Optional[str] = None
    contact_info: Optional[str] = None
    images: List[ImageFile] = field(default_factory=list)


# Filters
class ServerFilter(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Optional[ReportType] = None
    category: Optional[Category] = None


class ClientFilter(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    status: Optional[StatusFilter] = None
    categories: Optional[FrozenSet[Category]] = None
    locations: Optional[FrozenSet[str]] = None
    search_text: Optional[str] = None
    date_range_days: Optional[Tuple[int, int]] = None


# Responses
class ReportStats(BaseModel):
    total: int
    lost: int
    found: int
    this_month: int
    by_category: Dict[str, int]


class MapPin(BaseModel):
    id: str
    type: str
    name: str
    category: str
    latitude: float
    longitude: float
    location: Optional[str] = None
    landmark: Optional[str] = None


def as_utc(value: dt.datetime) -> dt.datetime:
    # sqlite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def report_to_dict(report: Report) -> dict:
    return {
        "id": str(report.id),
        "type": report.type,
        "category": report.category,
        "name": report.name,
        "description": report.description,
        "location": report.location,
        "landmark": report.landmark,
        "latitude": report.latitude,
        "longitude": report.longitude,
        "date": report.date.isoformat(),
        "contactMethod": report.contact_method,
        "contactInfo": report.contact_info,
        "images": [{"url": url} for url in report.image_urls],
        "createdAt": as_utc(report.created_at).isoformat(),
        "updatedAt": as_utc(report.updated_at).isoformat(),
    }
