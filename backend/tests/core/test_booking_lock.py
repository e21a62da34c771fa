"""Tests for the per-window capacity lock."""

from datetime import date
import threading
from unittest.mock import MagicMock

import pytest

from app.core import booking_lock
from app.core.booking_lock import capacity_lock, capacity_lock_key
from app.core.exceptions import ConflictException

DAY = date(2026, 3, 3)


def test_key_names_partner_day_and_category():
    assert capacity_lock_key("p1", DAY, "wash") == "capacity:p1:2026-03-03:wash"


def test_held_lock_times_out_for_second_caller():
    acquired = threading.Event()
    release = threading.Event()

    def holder():
        with capacity_lock("p1", DAY, "wash"):
            acquired.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert acquired.wait(5)
        with pytest.raises(ConflictException) as exc_info:
            with capacity_lock("p1", DAY, "wash", wait_s=0.05):
                pass
        assert exc_info.value.code == "CAPACITY_LOCK_TIMEOUT"
    finally:
        release.set()
        thread.join(5)


def test_other_categories_are_not_blocked():
    with capacity_lock("p1", DAY, "wash"):
        with capacity_lock("p1", DAY, "detailing", wait_s=0.05) as key:
            assert key.endswith(":detailing")


def test_lock_is_reusable_after_release():
    with capacity_lock("p2", DAY, "wash"):
        pass
    with capacity_lock("p2", DAY, "wash", wait_s=0.05) as key:
        assert key == "capacity:p2:2026-03-03:wash"


def test_released_keys_leave_no_local_lock_behind():
    for day in range(1, 29):
        with capacity_lock("p6", date(2026, 2, day), "wash"):
            assert "capacity:p6:2026-02-%02d:wash" % day in booking_lock._LOCAL_LOCKS

    assert not any(key.startswith("capacity:p6:") for key in booking_lock._LOCAL_LOCKS)


def test_timed_out_waiter_does_not_drop_the_holders_lock():
    acquired = threading.Event()
    release = threading.Event()
    key = capacity_lock_key("p7", DAY, "wash")

    def holder():
        with capacity_lock("p7", DAY, "wash"):
            acquired.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert acquired.wait(5)
        with pytest.raises(ConflictException):
            with capacity_lock("p7", DAY, "wash", wait_s=0.05):
                pass
        assert key in booking_lock._LOCAL_LOCKS
    finally:
        release.set()
        thread.join(5)

    assert key not in booking_lock._LOCAL_LOCKS


class TestRedisLayer:
    def test_redis_mutex_taken_and_released(self, monkeypatch):
        redis = MagicMock()
        redis.set.return_value = True
        redis.eval.return_value = 1
        monkeypatch.setattr(booking_lock, "_get_sync_redis", lambda: redis)

        with capacity_lock("p3", DAY, "wash", ttl_s=7):
            pass

        args, kwargs = redis.set.call_args
        assert args[0] == "plindo:lock:capacity:p3:2026-03-03:wash"
        assert kwargs == {"nx": True, "ex": 7}
        token = args[1]
        assert redis.eval.call_args.args[-1] == token

    def test_redis_contention_times_out(self, monkeypatch):
        redis = MagicMock()
        redis.set.return_value = False
        monkeypatch.setattr(booking_lock, "_get_sync_redis", lambda: redis)

        with pytest.raises(ConflictException):
            with capacity_lock("p4", DAY, "wash", wait_s=0.1):
                pass
        redis.eval.assert_not_called()

    def test_redis_errors_fall_back_to_local_lock(self, monkeypatch):
        redis = MagicMock()
        redis.set.side_effect = ConnectionError("down")
        monkeypatch.setattr(booking_lock, "_get_sync_redis", lambda: redis)

        with capacity_lock("p5", DAY, "wash") as key:
            assert key == "capacity:p5:2026-03-03:wash"
        redis.eval.assert_not_called()
