from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager

import redis

logger = logging.getLogger(__name__)


@contextmanager
def save_slot_lock(
    *,
    r: redis.Redis,
    project_id: str,
    slot: int,
    ttl_ms: int = 5_000,
    attempts: int = 3,
    retry_delay_s: float = 0.01,
):
    """Short-lived per-slot lock so two sessions can't interleave writes to one slot.

    Each holder stores its own token and only deletes the key while it still
    holds that token, so a holder whose TTL lapsed can't release a successor.
    """

    key = f"lock:save:{project_id}:{slot}"
    token = uuid.uuid4().hex

    for attempt in range(attempts):
        if r.set(key, token, nx=True, px=ttl_ms):
            break
        if attempt + 1 < attempts:
            time.sleep(retry_delay_s * (attempt + 1))
    else:
        raise ValueError(f"Save slot {slot} is busy")

    try:
        yield
    finally:
        # Check-then-delete is not atomic; the TTL bounds the window.
        if r.get(key) in (token, token.encode()):
            r.delete(key)
        else:
            logger.warning("Lock %s expired before release", key)
