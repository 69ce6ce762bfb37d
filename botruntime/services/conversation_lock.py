"""Optional per-(user, project) lease around a conversation transition."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import redis

from botruntime.config import get_settings

logger = logging.getLogger(__name__)


def _lock_key(project_id: int, telegram_user_id: str) -> str:
    return f"botruntime:conversation:{project_id}:{telegram_user_id}"


@contextmanager
def conversation_lease(project_id: int, telegram_user_id: str) -> Iterator[bool]:
    """Yield True while the lease is held; False when disabled or unavailable.

    Without the lease the compare-and-swap on ``current_step`` still applies.
    """
    s = get_settings()
    if not s.conversation_lock_enabled:
        yield False
        return
    lock = None
    acquired = False
    try:
        r = redis.Redis(host=s.redis_host, port=s.redis_port)
        lock = r.lock(
            _lock_key(project_id, telegram_user_id),
            timeout=s.conversation_lock_timeout_seconds,
            blocking_timeout=s.conversation_lock_timeout_seconds,
        )
        acquired = bool(lock.acquire())
    except redis.RedisError as e:
        logger.warning("conversation_lease_unavailable project_id=%s err=%s", project_id, str(e)[:200])
    try:
        yield acquired
    finally:
        if acquired and lock is not None:
            try:
                lock.release()
            except redis.exceptions.LockError as e:
                logger.warning("conversation_lease_release_failed project_id=%s err=%s", project_id, e)
