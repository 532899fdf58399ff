from __future__ import annotations

from statemachine import State, StateMachine

from vnengine.api.models import EngineState, EngineStatus


class EngineFSM(StateMachine):
    """FSM wrapper around EngineState.status.

    - menu -> loading -> running; running <-> menu
    - new game and load both pass through loading, from either menu or running.
    The engine mutates state itself; the FSM only guards transitions.
    """

    menu = State(EngineStatus.menu.value, value=EngineStatus.menu.value, initial=True)
    loading = State(EngineStatus.loading.value, value=EngineStatus.loading.value)
    running = State(EngineStatus.running.value, value=EngineStatus.running.value)

    start_loading = menu.to(loading) | running.to(loading)
    finish_loading = loading.to(running)
    open_menu = running.to(menu)
    close_menu = menu.to(running)

    def __init__(self, engine_state: EngineState):
        self.engine_state = engine_state
        super().__init__(start_value=engine_state.status.value)

    def sync_status_to_model(self) -> None:
        self.engine_state.status = EngineStatus(str(self.current_state.value))
