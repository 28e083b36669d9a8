from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from event_rsvp.core.config import USER_ID_MAX_LENGTH
from event_rsvp.database.db import Base

if TYPE_CHECKING:
    from event_rsvp.models.events import Event


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Attendance(Base):
    """One reserved seat: a user's membership in an event's attendee set."""

    __tablename__ = "attendances"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_attendance_event_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(USER_ID_MAX_LENGTH), nullable=False, index=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    event: Mapped["Event"] = relationship(back_populates="attendances")
