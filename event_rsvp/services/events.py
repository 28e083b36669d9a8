from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from event_rsvp.models.attendances import Attendance
from event_rsvp.models.events import Event
from event_rsvp.services.errors import (
    DuplicateEventError,
    EventNotFoundError,
    InvalidCapacityError,
    InvalidInputError,
    NotAuthorizedError,
)
from event_rsvp.services.locking import run_atomic
from event_rsvp.services.reservations import load_event_for_update


def ensure_creator(event: Event, caller_id: str, action: str = "update") -> None:
    if event.creator_id != caller_id:
        raise NotAuthorizedError(f"Not authorized to {action} this event")


def normalize_title(title: Any) -> str:
    """Titles are stored trimmed, so uniqueness compares like with like."""
    if not isinstance(title, str) or not title.strip():
        raise InvalidInputError("Event title is required")
    return title.strip()


def ensure_unique_title(db: Session, title: str, exclude_id: int | None = None) -> None:
    stmt = select(Event.id).where(func.lower(Event.title) == title.strip().lower())
    if exclude_id is not None:
        stmt = stmt.where(Event.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise DuplicateEventError()


def validate_capacity(capacity: Any) -> int:
    # bool is an int subclass; True is not a capacity
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise InvalidCapacityError(capacity)
    return capacity


def create_event(db: Session, *, creator_id: str, data: dict[str, Any]) -> Event:
    validate_capacity(data.get("capacity"))
    data = dict(data, title=normalize_title(data.get("title")))
    ensure_unique_title(db, data["title"])

    event = Event(**data, creator_id=creator_id, current_attendees=0)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info(f"Event {event.id} created by {creator_id} with capacity {event.capacity}")
    return event


def get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id, populate_existing=True)
    if event is None:
        raise EventNotFoundError(event_id)
    return event


def list_events(db: Session) -> list[Event]:
    return list(db.scalars(select(Event).order_by(Event.date, Event.id)))


def list_created_events(db: Session, user_id: str) -> list[Event]:
    stmt = select(Event).where(Event.creator_id == user_id).order_by(Event.date, Event.id)
    return list(db.scalars(stmt))


def list_attending_events(db: Session, user_id: str) -> list[Event]:
    stmt = (
        select(Event)
        .join(Attendance, Attendance.event_id == Event.id)
        .where(Attendance.user_id == user_id)
        .order_by(Event.date, Event.id)
    )
    return list(db.scalars(stmt))


def get_event_stats(db: Session, event_id: int) -> dict:
    event = get_event(db, event_id)
    return {
        "event_id": event.id,
        "capacity": event.capacity,
        "current_attendees": event.current_attendees,
        "seats_available": event.seats_available,
    }


def delete_event(db: Session, *, event_id: int, caller_id: str) -> list[str]:
    """Delete an event, releasing every reservation. Returns the released users."""
    return run_atomic(db, event_id, _delete_in_transaction, caller_id)


def _delete_in_transaction(db: Session, event_id: int, caller_id: str) -> list[str]:
    event = load_event_for_update(db, event_id)
    ensure_creator(event, caller_id, action="delete")

    released = event.attendees
    db.delete(event)
    db.flush()
    logger.info(f"Event {event_id} deleted by {caller_id}, released {len(released)} attendee(s)")
    return released
