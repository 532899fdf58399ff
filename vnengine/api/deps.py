from __future__ import annotations

from collections.abc import Generator

import redis

from vnengine.config import EngineSettings, settings_from_env


def get_settings() -> EngineSettings:
    return settings_from_env()


def get_redis() -> Generator[redis.Redis, None, None]:
    # decode_responses=True => strings in/out instead of bytes
    client = redis.Redis.from_url(settings_from_env().redis_url, decode_responses=True)
    try:
        yield client
    finally:
        try:
            client.close()
        except Exception:
            # Some redis client versions don't require explicit close.
            pass
