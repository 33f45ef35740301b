"""Query builder: turns a flat EventFilters record into one SQL predicate."""
from datetime import date, datetime
from typing import Optional

import pytz
from sqlalchemy import and_, func, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from event_manager.config import settings
from event_manager.models.attendee import EventAttendee
from event_manager.models.event import Event
from event_manager.schemas.event import EventFilters

_LIKE_ESCAPE = "\\"


def current_date(tz_name: Optional[str] = None) -> date:
    """Today's calendar date in the configured (or given) IANA timezone."""
    tz = pytz.timezone(tz_name or settings.TIMEZONE)
    return datetime.now(tz).date()


def attendee_count():
    """Correlated scalar subquery: number of attendees on the outer Event row."""
    return (
        select(func.count(EventAttendee.id))
        .where(EventAttendee.event_id == Event.id)
        .correlate(Event)
        .scalar_subquery()
    )


def _escape_like(text: str) -> str:
    return (
        text.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def build_event_query(filters: EventFilters, today: Optional[date] = None) -> ColumnElement:
    """Build the WHERE predicate for an event listing.

    - category: equality
    - start_date / end_date: inclusive date range; ``is_upcoming`` replaces the
      lower bound with today
    - min_attendees / max_attendees: compared against the attendee list size
    - search_query: case-insensitive substring of title OR description OR location

    Matching is boolean, there is no ranking. No filters means "match everything".
    """
    conditions = []

    if filters.category:
        conditions.append(Event.category == filters.category)

    lower_bound = filters.start_date
    if filters.is_upcoming:
        lower_bound = today or current_date()
    if lower_bound:
        conditions.append(Event.date >= lower_bound)
    if filters.end_date:
        conditions.append(Event.date <= filters.end_date)

    if filters.min_attendees is not None or filters.max_attendees is not None:
        count = attendee_count()
        if filters.min_attendees is not None:
            conditions.append(count >= filters.min_attendees)
        if filters.max_attendees is not None:
            conditions.append(count <= filters.max_attendees)

    search = (filters.search_query or "").strip()
    if search:
        pattern = f"%{_escape_like(search)}%"
        conditions.append(
            or_(
                Event.title.ilike(pattern, escape=_LIKE_ESCAPE),
                Event.description.ilike(pattern, escape=_LIKE_ESCAPE),
                Event.location.ilike(pattern, escape=_LIKE_ESCAPE),
            )
        )

    return and_(true(), *conditions)
