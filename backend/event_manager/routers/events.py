"""Event API routes: delegates to event_service, then fans changes out."""
import logging
from datetime import date
from typing import Any, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from event_manager.config import settings
from event_manager.database import get_db
from event_manager.models.event import Event, EventCategory
from event_manager.models.user import User
from event_manager.realtime import EventNotifier, get_notifier
from event_manager.schemas.event import (
    EventCreate,
    EventDeletedOut,
    EventFilters,
    EventListOut,
    EventOut,
    EventUpdate,
    SortField,
    SortOrder,
)
from event_manager.security import get_current_user
from event_manager.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


def event_payload(event: Event) -> dict[str, Any]:
    """JSON-safe event as pushed over the socket (same shape as the HTTP body)."""
    return EventOut.model_validate(event).model_dump(mode="json", by_alias=True)


def _field_values(payload, **dump_kwargs) -> dict[str, Any]:
    values = payload.model_dump(**dump_kwargs)
    if values.get("image") is not None:
        values["image"] = str(values["image"])
    return values


@router.get("", response_model=EventListOut)
def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: SortField = Query(SortField.date),
    sort_order: SortOrder = Query(SortOrder.asc),
    category: Optional[EventCategory] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search_query: Optional[str] = Query(None),
    min_attendees: Optional[int] = Query(None, ge=0),
    max_attendees: Optional[int] = Query(None, ge=0),
    is_upcoming: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List events with filters, sorting and pagination."""
    filters = EventFilters(
        category=category,
        start_date=start_date,
        end_date=end_date,
        search_query=search_query,
        min_attendees=min_attendees,
        max_attendees=max_attendees,
        is_upcoming=is_upcoming,
    )
    events, pagination = event_service.list_events(
        db, filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )
    return {"data": events, "pagination": pagination}


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: EventNotifier = Depends(get_notifier),
):
    """Create an event organized by the caller, who auto-joins it."""
    event = event_service.create_event(db, current_user, _field_values(payload))
    background_tasks.add_task(notifier.event_created, event_payload(event))
    return event


@router.get("/{event_id}", response_model=EventOut)
def get_event(
    event_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Fetch a single event with organizer and attendees."""
    return event_service.get_event(db, event_id)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: EventNotifier = Depends(get_notifier),
):
    """Partially update an event (organizer only)."""
    changes = _field_values(payload, exclude_unset=True)
    event = event_service.update_event(db, event_id, current_user, changes)
    background_tasks.add_task(notifier.event_updated, event_payload(event), event.attendee_ids)
    return event


@router.delete("/{event_id}", response_model=EventDeletedOut)
def delete_event(
    event_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: EventNotifier = Depends(get_notifier),
):
    """Delete an event (organizer only)."""
    attendee_ids = event_service.delete_event(db, event_id, current_user)
    background_tasks.add_task(notifier.event_deleted, event_id, attendee_ids)
    return {"message": "Event deleted successfully"}


@router.post("/{event_id}/join", response_model=EventOut)
def join_event(
    event_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: EventNotifier = Depends(get_notifier),
):
    """Join an event as an attendee. Joining twice changes nothing."""
    event, changed = event_service.join_event(db, event_id, current_user)
    if changed:
        background_tasks.add_task(notifier.event_updated, event_payload(event), event.attendee_ids)
    return event


@router.post("/{event_id}/leave", response_model=EventOut)
def leave_event(
    event_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: EventNotifier = Depends(get_notifier),
):
    """Leave an event. The organizer cannot leave; non-members are a no-op."""
    event, changed = event_service.leave_event(db, event_id, current_user)
    if changed:
        background_tasks.add_task(notifier.event_updated, event_payload(event), event.attendee_ids)
    return event
