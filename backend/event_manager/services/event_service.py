"""Core event service — listing, CRUD, and attendee membership.

Rules enforced here:
- Only the organizer may update or delete; anyone else sees 404
- The organizer is auto-joined on create and can never leave
- Join is idempotent and respects max_attendees
- Leave is a no-op for non-members
- Every mutation reloads organizer/attendee rows before returning
"""
import logging
import math
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from event_manager.models.attendee import EventAttendee
from event_manager.models.event import Event
from event_manager.models.user import User
from event_manager.schemas.event import EventFilters, SortField, SortOrder
from event_manager.services.event_query import build_event_query

logger = logging.getLogger(__name__)

EVENT_NOT_FOUND = "Event not found"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=EVENT_NOT_FOUND)


def _reload(db: Session, event: Event) -> Event:
    """Refresh an event and its organizer/attendee display data after a write."""
    db.refresh(event)
    # Touch the relationships so they are loaded while the session is open
    _ = event.organizer
    _ = [link.user for link in event.attendee_links]
    return event


def _get_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise _not_found()
    return event


def _get_owned_or_404(db: Session, event_id: str, user: User) -> Event:
    """Fetch an event the caller organizes. Other callers cannot tell it exists."""
    event = (
        db.query(Event)
        .filter(Event.id == event_id, Event.organizer_id == user.id)
        .first()
    )
    if not event:
        raise _not_found()
    return event


def list_events(
    db: Session,
    filters: EventFilters,
    page: int = 1,
    limit: int = 9,
    sort_by: SortField = SortField.date,
    sort_order: SortOrder = SortOrder.asc,
) -> tuple[list[Event], dict[str, int]]:
    """Return one page of matching events plus pagination metadata."""
    predicate = build_event_query(filters)

    sort_column = getattr(Event, sort_by.value)
    ordering = sort_column.desc() if sort_order == SortOrder.desc else sort_column.asc()

    events = (
        db.query(Event)
        .options(selectinload(Event.attendee_links))
        .filter(predicate)
        .order_by(ordering, Event.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total = db.query(func.count(Event.id)).filter(predicate).scalar() or 0

    pagination = {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }
    return events, pagination


def get_event(db: Session, event_id: str) -> Event:
    """Fetch a single event by ID."""
    return _get_or_404(db, event_id)


def create_event(db: Session, organizer: User, data: dict[str, Any]) -> Event:
    """Create an event; the organizer becomes its first attendee."""
    event = Event(**data, organizer_id=organizer.id)
    event.attendee_links.append(EventAttendee(user_id=organizer.id))
    db.add(event)
    db.commit()
    logger.info("Created event '%s' (%s) by organizer %s", event.title, event.id, organizer.id)
    return _reload(db, event)


def update_event(db: Session, event_id: str, actor: User, changes: dict[str, Any]) -> Event:
    """Merge the given fields into an event the caller organizes."""
    event = _get_owned_or_404(db, event_id, actor)

    new_cap: Optional[int] = changes.get("max_attendees", event.max_attendees)
    if new_cap and event.attendee_count > new_cap:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Maximum attendees cannot be less than the current number of attendees",
        )

    for field, value in changes.items():
        setattr(event, field, value)

    db.commit()
    logger.info("Updated event %s fields %s", event_id, sorted(changes))
    return _reload(db, event)


def delete_event(db: Session, event_id: str, actor: User) -> list[str]:
    """Delete an event the caller organizes.

    Returns:
        The ids of the users who were attending, captured before deletion.
    """
    event = _get_owned_or_404(db, event_id, actor)
    attendee_ids = event.attendee_ids
    db.delete(event)
    db.commit()
    logger.info("Deleted event %s (%d attendees)", event_id, len(attendee_ids))
    return attendee_ids


def join_event(db: Session, event_id: str, user: User) -> tuple[Event, bool]:
    """Add the caller to the attendee list.

    Returns:
        ``(event, changed)`` where ``changed`` is False when the caller was
        already attending.
    """
    event = _get_or_404(db, event_id)

    if event.has_attendee(user.id):
        return _reload(db, event), False

    if event.is_at_capacity:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is at maximum capacity")

    event.attendee_links.append(EventAttendee(user_id=user.id))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent join for the same user won; the membership exists either way
        db.rollback()
        return _reload(db, event), False

    logger.info("User %s joined event %s", user.id, event_id)
    return _reload(db, event), True


def leave_event(db: Session, event_id: str, user: User) -> tuple[Event, bool]:
    """Remove the caller from the attendee list.

    Returns:
        ``(event, changed)`` where ``changed`` is False when the caller was not
        attending.
    """
    event = _get_or_404(db, event_id)

    if event.organizer_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Organizer cannot leave the event")

    link = next((a for a in event.attendee_links if a.user_id == user.id), None)
    if link is None:
        return _reload(db, event), False

    event.attendee_links.remove(link)
    db.commit()
    logger.info("User %s left event %s", user.id, event_id)
    return _reload(db, event), True
