"""Outcome errors raised by the reservation engine and event services.

Every error carries a stable ``code`` so callers can tell "you already joined"
apart from "the event is full" apart from "the event vanished", plus the HTTP
status the request boundary answers with.
"""


class RSVPError(Exception):
    code = "rsvp_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ---------- NotFound ----------
class EventNotFoundError(RSVPError):
    code = "event_not_found"
    status_code = 404

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__("Event not found")


# ---------- Conflict ----------
class ConflictError(RSVPError):
    status_code = 409


class AlreadyRegisteredError(ConflictError):
    code = "already_registered"

    def __init__(self, message: str = "You have already RSVP'd to this event"):
        super().__init__(message)


class NotRegisteredError(ConflictError):
    code = "not_registered"

    def __init__(self, message: str = "You have not RSVP'd to this event"):
        super().__init__(message)


class EventFullError(ConflictError):
    code = "event_full"

    def __init__(self, message: str = "Event is at full capacity"):
        super().__init__(message)


class DuplicateEventError(ConflictError):
    code = "duplicate_event"

    def __init__(self, message: str = "An event with this title already exists"):
        super().__init__(message)


# ---------- Unauthorized ----------
class NotAuthorizedError(RSVPError):
    code = "not_authorized"
    status_code = 403


class UnauthenticatedError(RSVPError):
    code = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


# ---------- InvalidInput ----------
class InvalidInputError(RSVPError):
    code = "invalid_input"
    status_code = 422


class InvalidCapacityError(InvalidInputError):
    code = "invalid_capacity"

    def __init__(self, capacity):
        self.capacity = capacity
        super().__init__(f"Capacity must be a positive integer, got {capacity!r}")


# ---------- Transient ----------
class TransientReservationError(RSVPError):
    """Store or lock contention. Safe for the caller to retry later."""

    code = "transient_failure"
    status_code = 503
