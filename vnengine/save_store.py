from __future__ import annotations

import redis

from vnengine.api.models import SaveRecord, SaveSummary
from vnengine.core.errors import SaveNotFoundError
from vnengine.lock import save_slot_lock


SAVES_SET_KEY_PREFIX = "vnengine:saves:"  # + {project_id}
SAVE_KEY_PREFIX = "vnengine:save:"  # + {project_id}:{slot}


def _save_key(project_id: str, slot: int) -> str:
    return f"{SAVE_KEY_PREFIX}{project_id}:{slot}"


def _saves_set_key(project_id: str) -> str:
    return f"{SAVES_SET_KEY_PREFIX}{project_id}"


def validate_slot(slot: int) -> None:
    if slot < 0:
        raise ValueError("Save slot must be a non-negative integer")


def write_save(*, r: redis.Redis, project_id: str, slot: int, record: SaveRecord) -> None:
    validate_slot(slot)
    with save_slot_lock(r=r, project_id=project_id, slot=slot):
        r.set(_save_key(project_id, slot), record.model_dump_json())
        r.sadd(_saves_set_key(project_id), str(slot))


def get_save(*, r: redis.Redis, project_id: str, slot: int) -> SaveRecord | None:
    raw = r.get(_save_key(project_id, slot))
    if not raw:
        return None
    return SaveRecord.model_validate_json(raw)


def require_save(*, r: redis.Redis, project_id: str, slot: int) -> SaveRecord:
    record = get_save(r=r, project_id=project_id, slot=slot)
    if record is None:
        raise SaveNotFoundError(f"No save data in slot {slot}")
    return record


def delete_save(*, r: redis.Redis, project_id: str, slot: int) -> bool:
    with save_slot_lock(r=r, project_id=project_id, slot=slot):
        removed = r.delete(_save_key(project_id, slot))
        r.srem(_saves_set_key(project_id), str(slot))
    return bool(removed)


def list_saves(*, r: redis.Redis, project_id: str) -> list[SaveSummary]:
    slots: list[int] = []
    for raw in r.smembers(_saves_set_key(project_id)):
        try:
            slots.append(int(raw))
        except ValueError:
            continue

    out: list[SaveSummary] = []
    for slot in sorted(slots):
        record = get_save(r=r, project_id=project_id, slot=slot)
        if record is None:
            continue
        out.append(
            SaveSummary(
                slot=slot,
                name=record.name,
                timestamp=record.timestamp,
                current_event=record.engine_state.current_event,
                current_step=record.engine_state.current_step,
            )
        )
    return out
