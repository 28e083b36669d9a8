from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from event_rsvp.database.db import get_db
from event_rsvp.routes.deps import get_current_user_id
from event_rsvp.schemas.events import EventOut
from event_rsvp.services.reservations import join_event, leave_event

router = APIRouter(prefix="/rsvp", tags=["rsvp"])


@router.post("/{event_id}", response_model=EventOut)
def rsvp(event_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return join_event(db, event_id=event_id, user_id=user_id)


@router.delete("/{event_id}", response_model=EventOut)
def cancel_rsvp(event_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return leave_event(db, event_id=event_id, user_id=user_id)
