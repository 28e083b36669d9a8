"""Atomic-unit plumbing shared by every mutation of an event's membership.

An atomic unit is: per-event Redis lock -> one database transaction -> commit
-> lock release. Units on the same event serialize; units on different events
never touch the same lock. Contention (lock not acquired, Redis unreachable,
database-level conflicts) surfaces as ``TransientReservationError`` and is
retried a bounded number of times.
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, TypeVar

import redis
from loguru import logger
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from event_rsvp.core.config import (
    EVENT_LOCK_BLOCKING_TIMEOUT,
    EVENT_LOCK_TIMEOUT,
    RESERVATION_MAX_ATTEMPTS,
    get_redis_url,
)
from event_rsvp.services.errors import TransientReservationError

T = TypeVar("T")


@lru_cache(maxsize=1)
def get_redis_client():
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


def lock_key(event_id: int) -> str:
    return f"event_lock:{event_id}"


@contextmanager
def event_lock(event_id: int):
    """Hold the per-event lock for the duration of the block."""
    try:
        lock = get_redis_client().lock(
            lock_key(event_id),
            timeout=EVENT_LOCK_TIMEOUT,
            blocking_timeout=EVENT_LOCK_BLOCKING_TIMEOUT,
        )
        acquired = lock.acquire(blocking=True)
    except redis.exceptions.RedisError as exc:
        raise TransientReservationError("Event lock unavailable, please try again.") from exc
    if not acquired:
        raise TransientReservationError("Could not acquire event lock, please try again.")

    try:
        yield
    finally:
        # The unit has already committed or rolled back; its outcome stands.
        try:
            lock.release()
        except redis.exceptions.LockError:
            logger.warning(f"Event lock {lock_key(event_id)} expired before release")
        except redis.exceptions.RedisError as exc:
            logger.warning(f"Event lock {lock_key(event_id)} not released, left to expire: {exc}")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Transient failure (attempt {retry_state.attempt_number}), retrying: {exc}")


def run_atomic(db: Session, event_id: int, operation: Callable[..., T], *args, **kwargs) -> T:
    """Run ``operation(db, event_id, ...)`` as one atomic unit on ``event_id``.

    The transaction is committed before the lock is released. Any error rolls
    the whole unit back, so an aborted call leaves the store as it was.
    Business-rule errors propagate immediately; only transient failures are
    retried, up to ``RESERVATION_MAX_ATTEMPTS`` attempts in total.
    """
    retrying = Retrying(
        retry=retry_if_exception_type(TransientReservationError),
        stop=stop_after_attempt(RESERVATION_MAX_ATTEMPTS),
        wait=wait_random_exponential(multiplier=0.05, max=1),
        before_sleep=_log_retry,
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            with event_lock(event_id):
                try:
                    result = operation(db, event_id, *args, **kwargs)
                    db.commit()
                except OperationalError as exc:
                    db.rollback()
                    raise TransientReservationError("The store is busy, please try again.") from exc
                except Exception:
                    db.rollback()
                    raise
            return result
    raise AssertionError("unreachable")
