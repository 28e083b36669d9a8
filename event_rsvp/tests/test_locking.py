"""
Test the per-event lock and the atomic-unit runner.
"""
import pytest
import redis
from sqlalchemy.exc import OperationalError

from event_rsvp.services import locking
from event_rsvp.services.errors import EventFullError, TransientReservationError
from event_rsvp.services.locking import event_lock, lock_key, run_atomic


class TestEventLock:
    """Test Redis locking for events."""

    def test_lock_is_held_inside_block(self, fake_redis):
        with event_lock(1):
            other = fake_redis.lock(lock_key(1), timeout=5)
            assert other.acquire(blocking=False) is False

        # Released on exit
        other = fake_redis.lock(lock_key(1), timeout=5)
        assert other.acquire(blocking=False) is True
        other.release()

    def test_lock_released_on_error(self, fake_redis):
        with pytest.raises(ValueError):
            with event_lock(7):
                raise ValueError("inside")

        assert fake_redis.get(lock_key(7)) is None

    def test_different_events_do_not_contend(self, fake_redis):
        with event_lock(1):
            with event_lock(2):
                assert fake_redis.get(lock_key(1)) is not None
                assert fake_redis.get(lock_key(2)) is not None

    def test_busy_lock_is_transient(self, fake_redis, monkeypatch):
        monkeypatch.setattr(locking, "EVENT_LOCK_BLOCKING_TIMEOUT", 0.2)
        holder = fake_redis.lock(lock_key(3), timeout=10)
        assert holder.acquire(blocking=False)
        try:
            with pytest.raises(TransientReservationError):
                with event_lock(3):
                    pass
        finally:
            holder.release()

    def test_redis_down_is_transient(self, monkeypatch):
        class DownRedis:
            def lock(self, *args, **kwargs):
                raise redis.exceptions.ConnectionError("connection refused")

        monkeypatch.setattr(locking, "get_redis_client", lambda: DownRedis())

        with pytest.raises(TransientReservationError):
            with event_lock(1):
                pass

    def test_redis_down_on_acquire_is_transient(self, monkeypatch):
        class DownLock:
            def acquire(self, blocking=True):
                raise redis.exceptions.ConnectionError("connection reset")

        class FlakyRedis:
            def lock(self, *args, **kwargs):
                return DownLock()

        monkeypatch.setattr(locking, "get_redis_client", lambda: FlakyRedis())

        with pytest.raises(TransientReservationError):
            with event_lock(1):
                pass

    def test_redis_down_on_release_keeps_outcome(self, monkeypatch):
        class DropsOnRelease:
            def acquire(self, blocking=True):
                return True

            def release(self):
                raise redis.exceptions.ConnectionError("connection reset")

        class FlakyRedis:
            def lock(self, *args, **kwargs):
                return DropsOnRelease()

        monkeypatch.setattr(locking, "get_redis_client", lambda: FlakyRedis())
        db = FakeSession()

        assert run_atomic(db, 4, lambda session, event_id: "committed") == "committed"
        assert db.commits == 1
        assert db.rollbacks == 0


class FakeSession:
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class TestRunAtomic:
    """Test commit/rollback and bounded retry of atomic units."""

    def test_commits_on_success(self):
        db = FakeSession()
        result = run_atomic(db, 1, lambda session, event_id: f"done {event_id}")

        assert result == "done 1"
        assert db.commits == 1
        assert db.rollbacks == 0

    def test_business_error_is_not_retried(self):
        db = FakeSession()
        calls = []

        def operation(session, event_id):
            calls.append(event_id)
            raise EventFullError()

        with pytest.raises(EventFullError):
            run_atomic(db, 1, operation)

        assert calls == [1]
        assert db.rollbacks == 1
        assert db.commits == 0

    def test_operational_error_retried_then_succeeds(self):
        db = FakeSession()
        calls = []

        def operation(session, event_id):
            calls.append(event_id)
            if len(calls) == 1:
                raise OperationalError("UPDATE events", {}, Exception("database is locked"))
            return "ok"

        assert run_atomic(db, 5, operation) == "ok"
        assert len(calls) == 2
        assert db.rollbacks == 1
        assert db.commits == 1

    def test_retries_are_bounded(self, monkeypatch):
        monkeypatch.setattr(locking, "RESERVATION_MAX_ATTEMPTS", 3)
        db = FakeSession()
        calls = []

        def operation(session, event_id):
            calls.append(event_id)
            raise OperationalError("UPDATE events", {}, Exception("database is locked"))

        with pytest.raises(TransientReservationError):
            run_atomic(db, 5, operation)

        assert len(calls) == 3
        assert db.commits == 0

    def test_lock_released_after_commit(self, fake_redis):
        db = FakeSession()
        seen = []

        def operation(session, event_id):
            seen.append(fake_redis.get(lock_key(event_id)) is not None)
            return None

        run_atomic(db, 9, operation)

        assert seen == [True]
        assert fake_redis.get(lock_key(9)) is None
