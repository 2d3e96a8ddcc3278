import uuid
import datetime as dt
from typing import List, Optional
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def utc_today() -> dt.date:
    return utcnow().date()


class Report(SQLModel, table=True):
    __tablename__ = "reports"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: dt.datetime = Field(default_factory=utcnow, index=True)
    updated_at: dt.datetime = Field(
        default_factory=utcnow,
        sa_column_kwargs={"onupdate": utcnow},
    )

    # Item fields
    type: str = Field(index=True)  # "lost" or "found"
    category: str = Field(index=True)
    name: str
    description: Optional[str] = None
    date: dt.date

    # Where it was lost / found
    location: Optional[str] = None
    landmark: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # Contact, contact_info is always NULL for "inapp"
    contact_method: str  # "email", "phone" or "inapp"
    contact_info: Optional[str] = None

    # [{"url": "..."}], at most 3
    images: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    @property
    def image_urls(self) -> List[str]:
        return [img["url"] for img in self.images or []]
