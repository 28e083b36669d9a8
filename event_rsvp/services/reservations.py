from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from event_rsvp.core.config import USER_ID_MAX_LENGTH
from event_rsvp.models.attendances import Attendance
from event_rsvp.models.events import Event
from event_rsvp.services.errors import (
    AlreadyRegisteredError,
    EventFullError,
    EventNotFoundError,
    InvalidInputError,
    NotRegisteredError,
)
from event_rsvp.services.locking import run_atomic


def join_event(db: Session, *, event_id: int, user_id: str) -> Event:
    """
    RSVP ``user_id`` to ``event_id``.
    Only one caller can take the last seat: the seat is claimed by a conditional
    update evaluated by the store, under the per-event lock.
    """
    _validate_user_id(user_id)
    return run_atomic(db, event_id, _join_in_transaction, user_id)


def leave_event(db: Session, *, event_id: int, user_id: str) -> Event:
    """Cancel ``user_id``'s RSVP to ``event_id`` and free the seat."""
    _validate_user_id(user_id)
    return run_atomic(db, event_id, _leave_in_transaction, user_id)


def load_event_for_update(db: Session, event_id: int) -> Event:
    stmt = select(Event).where(Event.id == event_id).with_for_update()
    # never decide on a copy cached in the identity map
    event = db.scalar(stmt.execution_options(populate_existing=True))
    if event is None:
        raise EventNotFoundError(event_id)
    return event


def reload_event(db: Session, event: Event) -> Event:
    """Re-read the event and its membership inside the current transaction."""
    db.flush()
    db.refresh(event)
    db.refresh(event, ["attendances"])
    return event


def is_registered(db: Session, event_id: int, user_id: str) -> bool:
    stmt = select(Attendance.id).where(Attendance.event_id == event_id, Attendance.user_id == user_id)
    return db.scalar(stmt) is not None


def _validate_user_id(user_id: str) -> None:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidInputError("A user identity is required")
    if len(user_id) > USER_ID_MAX_LENGTH:
        raise InvalidInputError(f"A user identity is at most {USER_ID_MAX_LENGTH} characters")


def _membership(event_id: int, user_id: str):
    return (
        select(Attendance.id)
        .where(Attendance.event_id == event_id, Attendance.user_id == user_id)
        .exists()
    )


def _join_in_transaction(db: Session, event_id: int, user_id: str) -> Event:
    event = load_event_for_update(db, event_id)
    if is_registered(db, event_id, user_id):
        raise AlreadyRegisteredError()
    if event.current_attendees >= event.capacity:
        raise EventFullError()

    # Re-check both predicates in the write itself
    stmt = (
        update(Event)
        .where(Event.id == event_id)
        .where(Event.current_attendees < Event.capacity)
        .where(~_membership(event_id, user_id))
        .values(current_attendees=Event.current_attendees + 1)
        .execution_options(synchronize_session=False)
    )
    res = db.execute(stmt)
    if res.rowcount != 1:  # type: ignore
        raise EventFullError()

    db.add(Attendance(event_id=event_id, user_id=user_id))
    try:
        db.flush()
    except IntegrityError as exc:
        raise AlreadyRegisteredError() from exc

    event = reload_event(db, event)
    logger.info(f"User {user_id} joined event {event_id} ({event.current_attendees}/{event.capacity})")
    return event


def _leave_in_transaction(db: Session, event_id: int, user_id: str) -> Event:
    event = load_event_for_update(db, event_id)
    if not is_registered(db, event_id, user_id):
        raise NotRegisteredError()

    res = db.execute(
        delete(Attendance)
        .where(Attendance.event_id == event_id, Attendance.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:  # type: ignore
        raise NotRegisteredError()

    stmt = (
        update(Event)
        .where(Event.id == event_id)
        .where(Event.current_attendees > 0)
        .values(current_attendees=Event.current_attendees - 1)
        .execution_options(synchronize_session=False)
    )
    db.execute(stmt)

    event = reload_event(db, event)
    logger.info(f"User {user_id} left event {event_id} ({event.current_attendees}/{event.capacity})")
    return event
