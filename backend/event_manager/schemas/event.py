"""Pydantic schemas for Events."""
from __future__ import annotations
import enum
import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field, HttpUrl, ValidationInfo, field_validator

from event_manager.models.event import EventCategory


def _required_text(value: Optional[str], info: ValidationInfo) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{info.field_name.capitalize()} is required")
    return value.strip()


class EventCreate(BaseModel):
    title: str
    description: str
    date: dt.date
    time: dt.time
    location: str
    category: EventCategory
    max_attendees: Optional[int] = Field(None, ge=1)
    image: Optional[HttpUrl] = None

    @field_validator("title", "description", "location")
    @classmethod
    def text_required(cls, v, info: ValidationInfo):
        return _required_text(v, info)


class EventUpdate(BaseModel):
    """Partial update. Only the fields actually sent are merged."""

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    location: Optional[str] = None
    category: Optional[EventCategory] = None
    max_attendees: Optional[int] = Field(None, ge=1)
    image: Optional[HttpUrl] = None

    @field_validator("title", "description", "location")
    @classmethod
    def text_required(cls, v, info: ValidationInfo):
        return _required_text(v, info)

    @field_validator("date", "time", "category")
    @classmethod
    def not_null(cls, v, info: ValidationInfo):
        if v is None:
            raise ValueError(f"{info.field_name.capitalize()} is required")
        return v


class PersonOut(BaseModel):
    id: str = Field(serialization_alias="_id")
    name: str
    email: str

    model_config = {"from_attributes": True}


class EventOut(BaseModel):
    id: str = Field(serialization_alias="_id")
    title: str
    description: str
    date: dt.date
    time: dt.time
    location: str
    category: EventCategory
    organizer: PersonOut
    attendees: list[PersonOut] = []
    max_attendees: Optional[int] = None
    image: Optional[str] = None
    attendee_count: int
    is_at_capacity: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class EventListOut(BaseModel):
    data: list[EventOut]
    pagination: Pagination


class EventDeletedOut(BaseModel):
    message: str


class SortField(str, enum.Enum):
    date = "date"
    time = "time"
    title = "title"
    category = "category"
    location = "location"
    created_at = "created_at"
    updated_at = "updated_at"


class SortOrder(str, enum.Enum):
    asc = "asc"
    desc = "desc"


class EventFilters(BaseModel):
    """Flat filter record handed to the query builder."""

    category: Optional[EventCategory] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    search_query: Optional[str] = None
    min_attendees: Optional[int] = Field(None, ge=0)
    max_attendees: Optional[int] = Field(None, ge=0)
    is_upcoming: bool = False
