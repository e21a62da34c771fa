"""
Capacity lock serialising booking writes per (partner, date, category).

Two layers: a process-local ``threading.Lock`` per key, kept only while
some caller holds or waits on it, plus a Redis ``SET NX EX`` mutex when
``settings.redis_url`` is configured so several API workers share the
same critical section. The caller must commit its transaction before
leaving the context.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
import time
from typing import Any, Dict, Iterator, List, Optional
import uuid

from redis import Redis

from app.core.config import settings
from app.core.exceptions import ConflictException
from app.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

# key -> [lock, callers holding or waiting]; entries are dropped at zero
_LOCAL_LOCKS: Dict[str, List[Any]] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()

_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""

_POLL_INTERVAL_S = 0.05


def capacity_lock_key(partner_id: str, slot_date: date, category: str) -> str:
    return f"capacity:{partner_id}:{slot_date.isoformat()}:{category}"


def _namespaced_key(key: str) -> str:
    return f"plindo:lock:{key}"


def _checkout_local_lock(key: str) -> threading.Lock:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(key)
        if entry is None:
            entry = [threading.Lock(), 0]
            _LOCAL_LOCKS[key] = entry
        entry[1] += 1
        return entry[0]


def _return_local_lock(key: str) -> None:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS[key]
        entry[1] -= 1
        if entry[1] == 0:
            del _LOCAL_LOCKS[key]


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("capacity_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _lock_timeout(key: str) -> ConflictException:
    prometheus_metrics.record_capacity_lock("acquire", "timeout")
    logger.warning("capacity_lock_timeout", extra={"lock_key": key})
    return ConflictException(
        "Another booking for this time window is being processed, please retry",
        code="CAPACITY_LOCK_TIMEOUT",
        details={"lock_key": key},
    )


def _acquire_redis(key: str, ttl_s: int, deadline: float) -> Optional[str]:
    """Spin on SET NX until acquired. Returns the owner token, or None when Redis is off."""
    client = _get_sync_redis()
    if client is None:
        return None
    token = uuid.uuid4().hex
    redis_key = _namespaced_key(key)
    while True:
        try:
            if client.set(redis_key, token, nx=True, ex=ttl_s):
                prometheus_metrics.record_capacity_lock("acquire", "success")
                return token
        except Exception as exc:
            # Fall back to the process-local lock only
            prometheus_metrics.record_capacity_lock("acquire", "error")
            logger.warning(
                "capacity_lock_redis_failed",
                extra={
                    "lock_key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return None
        if time.monotonic() >= deadline:
            raise _lock_timeout(key)
        prometheus_metrics.record_capacity_lock("acquire", "blocked")
        time.sleep(_POLL_INTERVAL_S)


def _release_redis(key: str, token: str) -> None:
    client = _get_sync_redis()
    if client is None:
        return
    try:
        released = client.eval(_RELEASE_SCRIPT, 1, _namespaced_key(key), token)
        outcome = "success" if released else "not_owner"
        prometheus_metrics.record_capacity_lock("release", outcome)
    except Exception as exc:
        prometheus_metrics.record_capacity_lock("release", "error")
        logger.warning(
            "capacity_lock_release_failed",
            extra={
                "lock_key": key,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def capacity_lock(
    partner_id: str,
    slot_date: date,
    category: str,
    *,
    ttl_s: Optional[int] = None,
    wait_s: Optional[float] = None,
) -> Iterator[str]:
    """
    Hold the capacity mutex for one partner/date/category.

    Raises:
        ConflictException: If the lock could not be acquired within ``wait_s``
    """
    key = capacity_lock_key(partner_id, slot_date, category)
    ttl = ttl_s or settings.capacity_lock_ttl_seconds
    wait = wait_s if wait_s is not None else settings.capacity_lock_wait_seconds
    deadline = time.monotonic() + wait

    local = _checkout_local_lock(key)
    try:
        if not local.acquire(timeout=wait):
            raise _lock_timeout(key)
        token: Optional[str] = None
        try:
            token = _acquire_redis(key, ttl, deadline)
            logger.debug("capacity_lock_acquired", extra={"lock_key": key})
            yield key
        finally:
            if token is not None:
                _release_redis(key, token)
            local.release()
    finally:
        _return_local_lock(key)
