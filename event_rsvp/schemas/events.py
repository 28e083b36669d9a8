import datetime as dt

from pydantic import BaseModel, Field


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    date: dt.date
    time: str = Field(min_length=1, max_length=32)
    location: str = Field(min_length=1, max_length=255)
    capacity: int = Field(ge=1)
    image_url: str | None = Field(default=None, max_length=500)


class EventUpdate(BaseModel):
    """Partial update; omitted fields stay as they are."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    date: dt.date | None = None
    time: str | None = Field(default=None, min_length=1, max_length=32)
    location: str | None = Field(default=None, min_length=1, max_length=255)
    capacity: int | None = Field(default=None, ge=1)
    image_url: str | None = Field(default=None, max_length=500)


class CapacityUpdate(BaseModel):
    capacity: int = Field(ge=1)


class EventOut(BaseModel):
    id: int
    title: str
    description: str
    date: dt.date
    time: str
    location: str
    capacity: int
    current_attendees: int
    image_url: str | None
    creator_id: str
    attendees: list[str]
    created_at: dt.datetime | None

    class Config:
        from_attributes = True


class EventListOut(BaseModel):
    success: bool = True
    count: int
    events: list[EventOut]


class EventStatsOut(BaseModel):
    event_id: int
    capacity: int
    current_attendees: int
    seats_available: int


class MessageOut(BaseModel):
    success: bool = True
    message: str
