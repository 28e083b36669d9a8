from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy.orm import Session

from event_rsvp.database.db import get_db
from event_rsvp.routes.deps import get_current_user_id
from event_rsvp.schemas.events import (
    CapacityUpdate,
    EventCreate,
    EventListOut,
    EventOut,
    EventStatsOut,
    EventUpdate,
    MessageOut,
)
from event_rsvp.services import events as event_service
from event_rsvp.services.reconciliation import update_capacity, update_event
from event_rsvp.tasks import release_attendees_task

router = APIRouter(prefix="/events", tags=["events"])


def _enqueue_release(event_id: int, user_ids: list[str], reason: str) -> None:
    if not user_ids:
        return
    # the unit already committed; a broker outage must not turn it into an error
    try:
        release_attendees_task.delay(event_id, user_ids, reason)
    except Exception as exc:
        logger.opt(exception=exc).warning(
            f"Could not enqueue release of {len(user_ids)} attendee(s) for event {event_id}"
        )


def _listing(events) -> EventListOut:
    return EventListOut(count=len(events), events=[EventOut.model_validate(e) for e in events])


@router.get("", response_model=EventListOut)
def list_events(db: Session = Depends(get_db)):
    return _listing(event_service.list_events(db))


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return event_service.create_event(db, creator_id=user_id, data=payload.model_dump())


@router.get("/user/my-events", response_model=EventListOut)
def my_events(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return _listing(event_service.list_created_events(db, user_id))


@router.get("/user/attending", response_model=EventListOut)
def attending_events(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return _listing(event_service.list_attending_events(db, user_id))


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: int, db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id)


@router.get("/{event_id}/stats", response_model=EventStatsOut)
def event_stats(event_id: int, db: Session = Depends(get_db)):
    return event_service.get_event_stats(db, event_id)


@router.put("/{event_id}", response_model=EventOut)
def edit_event(
    event_id: int,
    payload: EventUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    change = update_event(
        db, event_id=event_id, caller_id=user_id, changes=payload.model_dump(exclude_unset=True, exclude_none=True)
    )
    _enqueue_release(event_id, change.released, reason="capacity_reduced")
    return change.event


@router.patch("/{event_id}/capacity", response_model=EventOut)
def change_capacity(
    event_id: int,
    payload: CapacityUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    change = update_capacity(db, event_id=event_id, caller_id=user_id, new_capacity=payload.capacity)
    _enqueue_release(event_id, change.released, reason="capacity_reduced")
    return change.event


@router.delete("/{event_id}", response_model=MessageOut)
def remove_event(event_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    released = event_service.delete_event(db, event_id=event_id, caller_id=user_id)
    _enqueue_release(event_id, released, reason="event_deleted")
    return MessageOut(message="Event deleted successfully")
