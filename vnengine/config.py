from __future__ import annotations

import os
from dataclasses import dataclass

from vnengine.core.gate import DEFAULT_SKIP_DELAY_S
from vnengine.core.history import DEFAULT_MAX_HISTORY_SIZE

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


@dataclass(frozen=True, slots=True)
class EngineSettings:
    max_history_size: int = DEFAULT_MAX_HISTORY_SIZE
    # Pacing between auto-advanced lines in skip mode.
    skip_delay_s: float = DEFAULT_SKIP_DELAY_S
    # Upper bound of loop turns `Engine.settle()` yields before giving up.
    settle_ticks: int = 200
    redis_url: str = DEFAULT_REDIS_URL


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e


def settings_from_env() -> EngineSettings:
    return EngineSettings(
        max_history_size=_int_env("VNENGINE_MAX_HISTORY", DEFAULT_MAX_HISTORY_SIZE),
        skip_delay_s=_int_env("VNENGINE_SKIP_DELAY_MS", int(DEFAULT_SKIP_DELAY_S * 1000)) / 1000,
        settle_ticks=_int_env("VNENGINE_SETTLE_TICKS", 200),
        redis_url=os.environ.get("REDIS_URL", DEFAULT_REDIS_URL),
    )
