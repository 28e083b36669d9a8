import datetime as dt

from sqlalchemy import Date, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from event_rsvp.core.config import USER_ID_MAX_LENGTH
from event_rsvp.database.db import Base
from event_rsvp.models.attendances import Attendance


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(32), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    creator_id: Mapped[str] = mapped_column(String(USER_ID_MAX_LENGTH), nullable=False, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Earliest joined first. Ids are assigned under the event lock, so id order is join order
    # and decides who stays when capacity shrinks.
    attendances: Mapped[list["Attendance"]] = relationship(
        back_populates="event",
        order_by=Attendance.id,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    @property
    def attendees(self) -> list[str]:
        return [a.user_id for a in self.attendances]

    @property
    def seats_available(self) -> int:
        return max(self.capacity - self.current_attendees, 0)
