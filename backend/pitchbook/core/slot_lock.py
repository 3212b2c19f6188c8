from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
from typing import Dict, Iterator, Optional, Tuple
import uuid

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()
_REDIS_DISABLED = False

# Deletes the key only while it still carries this holder's token.
RELEASE_LUA = r"""
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class _LocalSlotLock:
    """In-process mutex for one key; ``refs`` counts holders plus waiters."""

    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


_LOCAL_LOCKS: Dict[str, _LocalSlotLock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()


def _lock_key(pitch_id: str, booking_date: date) -> str:
    return f"slot:{pitch_id}:{booking_date.isoformat()}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _checkout_local_lock(key: str) -> _LocalSlotLock:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(key)
        if entry is None:
            entry = _LocalSlotLock()
            _LOCAL_LOCKS[key] = entry
        entry.refs += 1
        return entry


def _return_local_lock(key: str, entry: _LocalSlotLock) -> None:
    with _LOCAL_LOCKS_GUARD:
        entry.refs -= 1
        if entry.refs <= 0 and _LOCAL_LOCKS.get(key) is entry:
            del _LOCAL_LOCKS[key]


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS, _REDIS_DISABLED
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    if _REDIS_DISABLED or settings.is_testing:
        return None
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1,
            )
            client.ping()
        except Exception as exc:
            logger.warning("slot_lock_redis_unavailable: %s", exc)
            _REDIS_DISABLED = True
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def set_redis_client(client: Optional[Redis]) -> None:
    """Install (or clear) the Redis client used for cross-worker slot locks."""
    global _SYNC_REDIS, _REDIS_DISABLED
    with _SYNC_REDIS_LOCK:
        _SYNC_REDIS = client
        _REDIS_DISABLED = client is None


def acquire_slot_lock_distributed(key: str, ttl_s: int) -> Tuple[bool, Optional[str]]:
    """
    Try the cross-worker lock.

    Returns ``(acquired, token)``. The token is None when Redis was not
    involved (unavailable or erroring), in which case acquisition fails open.
    """
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_slot_lock("acquire", "redis_unavailable")
        return True, None
    token = uuid.uuid4().hex
    try:
        acquired = bool(client.set(_namespaced_key(key), token, nx=True, ex=ttl_s))
        prometheus_metrics.record_slot_lock("acquire", "success" if acquired else "blocked")
        return acquired, token if acquired else None
    except Exception as exc:
        prometheus_metrics.record_slot_lock("acquire", "error")
        logger.warning(
            "slot_lock_acquire_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        return True, None


def release_slot_lock_distributed(key: str, token: str) -> None:
    client = _get_sync_redis()
    if client is None:
        return
    try:
        deleted = int(client.eval(RELEASE_LUA, 1, _namespaced_key(key), token) or 0)
        prometheus_metrics.record_slot_lock("release", "success" if deleted else "not_owner")
        if not deleted:
            logger.warning("slot_lock_expired_before_release", extra={"lock_key": key})
    except Exception as exc:
        prometheus_metrics.record_slot_lock("release", "error")
        logger.warning(
            "slot_lock_release_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def slot_lock(pitch_id: str, booking_date: date, ttl_s: Optional[int] = None) -> Iterator[bool]:
    """
    Serialize check-then-insert for one (pitch, date).

    Yields True when the slot is held. Yields False when another worker holds
    the Redis lock; the caller decides how to report that. Redis being
    unreachable falls back to the in-process lock only.
    """
    if not settings.slot_lock_enabled:
        yield True
        return

    key = _lock_key(pitch_id, booking_date)
    ttl = ttl_s or settings.slot_lock_ttl_seconds
    entry = _checkout_local_lock(key)
    try:
        if not entry.lock.acquire(timeout=ttl):
            prometheus_metrics.record_slot_lock("acquire", "local_timeout")
            yield False
            return
        try:
            acquired, token = acquire_slot_lock_distributed(key, ttl)
            try:
                yield acquired
            finally:
                if token is not None:
                    release_slot_lock_distributed(key, token)
        finally:
            entry.lock.release()
    finally:
        _return_local_lock(key, entry)
