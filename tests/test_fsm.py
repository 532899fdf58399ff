from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from vnengine.api.models import EngineState, EngineStatus
from vnengine.fsm import EngineFSM


def test_fsm_syncs_status_from_model_and_back() -> None:
    st = EngineState()
    fsm = EngineFSM(st)

    fsm.send("start_loading")
    fsm.sync_status_to_model()
    assert st.status == EngineStatus.loading

    fsm.send("finish_loading")
    fsm.sync_status_to_model()
    assert st.status == EngineStatus.running


def test_fsm_starts_from_persisted_status() -> None:
    st = EngineState(status=EngineStatus.running)
    fsm = EngineFSM(st)

    fsm.send("start_loading")
    fsm.sync_status_to_model()
    assert st.status == EngineStatus.loading


def test_fsm_menu_round_trip() -> None:
    st = EngineState(status=EngineStatus.running)
    fsm = EngineFSM(st)

    fsm.send("open_menu")
    fsm.send("close_menu")
    fsm.sync_status_to_model()
    assert st.status == EngineStatus.running


def test_fsm_rejects_invalid_transition() -> None:
    fsm = EngineFSM(EngineState())

    with pytest.raises(TransitionNotAllowed):
        fsm.send("finish_loading")
