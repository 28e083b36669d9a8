from loguru import logger

from event_rsvp.core.celery_config import celery_app
from event_rsvp.core.logging import setup_logging

setup_logging()


@celery_app.task(bind=True)
def release_attendees_task(self, event_id: int, user_ids: list[str], reason: str) -> int:
    """Record the users released by a capacity cut or deletion, after commit."""
    for user_id in user_ids:
        logger.info(f"Reservation of {user_id} on event {event_id} released ({reason})")
    return len(user_ids)
