"""Capacity changes, and the membership truncation they can force.

Lowering capacity below the current attendee count keeps the earliest-joined
attendees and releases the most recently joined ones. The capacity write and
the truncation happen in one transaction, so no reader ever sees the new
capacity next to the old membership.
"""

from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from event_rsvp.models.attendances import Attendance
from event_rsvp.models.events import Event
from event_rsvp.services.events import (
    ensure_creator,
    ensure_unique_title,
    normalize_title,
    validate_capacity,
)
from event_rsvp.services.locking import run_atomic
from event_rsvp.services.reservations import load_event_for_update, reload_event

EDITABLE_FIELDS = ("title", "description", "date", "time", "location", "image_url")


@dataclass
class CapacityChange:
    event: Event
    released: list[str] = field(default_factory=list)


def update_capacity(db: Session, *, event_id: int, caller_id: str, new_capacity: int) -> CapacityChange:
    new_capacity = validate_capacity(new_capacity)
    return run_atomic(db, event_id, _update_in_transaction, caller_id, {"capacity": new_capacity})


def update_event(db: Session, *, event_id: int, caller_id: str, changes: dict[str, Any]) -> CapacityChange:
    """Apply detail edits and an optional capacity change as a single unit."""
    changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS or k == "capacity"}
    if "capacity" in changes:
        changes["capacity"] = validate_capacity(changes["capacity"])
    if "title" in changes:
        changes["title"] = normalize_title(changes["title"])
    return run_atomic(db, event_id, _update_in_transaction, caller_id, changes)


def reconcile_membership(db: Session, event: Event, new_capacity: int) -> list[str]:
    """Set ``event.capacity`` and truncate membership to fit. Returns released users."""
    released: list[str] = []
    if new_capacity < event.current_attendees:
        db.expire(event, ["attendances"])
        overflow = db.scalars(
            select(Attendance)
            .where(Attendance.event_id == event.id)
            .order_by(Attendance.id)
            .offset(new_capacity)
        ).all()
        released = [a.user_id for a in overflow]
        db.execute(
            delete(Attendance)
            .where(Attendance.id.in_([a.id for a in overflow]))
            .execution_options(synchronize_session=False)
        )

    # Counter is always recomputed from the rows it mirrors
    remaining = db.scalar(
        select(func.count()).select_from(Attendance).where(Attendance.event_id == event.id)
    )
    event.capacity = new_capacity
    event.current_attendees = int(remaining or 0)
    return released


def _update_in_transaction(db: Session, event_id: int, caller_id: str, changes: dict[str, Any]) -> CapacityChange:
    event = load_event_for_update(db, event_id)
    ensure_creator(event, caller_id)
    if "title" in changes:
        ensure_unique_title(db, changes["title"], exclude_id=event_id)

    for name in EDITABLE_FIELDS:
        if name in changes:
            setattr(event, name, changes[name])

    released: list[str] = []
    if "capacity" in changes:
        previous = event.capacity
        released = reconcile_membership(db, event, changes["capacity"])
        if released:
            logger.info(
                f"Event {event_id} capacity {previous} -> {event.capacity}, "
                f"released {len(released)} attendee(s): {released}"
            )
        else:
            logger.info(f"Event {event_id} capacity {previous} -> {event.capacity}")

    return CapacityChange(event=reload_event(db, event), released=released)
