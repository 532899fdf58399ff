from __future__ import annotations

import asyncio
import contextlib
import copy
import logging
from datetime import UTC, datetime
from typing import Any

import redis

from vnengine.actions import ActionResolver
from vnengine.api.models import EngineState, EngineStatus, SaveRecord
from vnengine.config import EngineSettings
from vnengine.content.registry import ContentPack, Location
from vnengine.core.context import EngineContext
from vnengine.core.errors import Interrupt, InvalidOperationError
from vnengine.core.history import HistoryStore
from vnengine.core.navigation import NavigationController
from vnengine.events import EventCatalog
from vnengine.fsm import EngineFSM
from vnengine.locations import LocationRegistry
from vnengine.save_store import require_save, write_save
from vnengine.scheduler import EventScheduler

logger = logging.getLogger(__name__)


class Engine:
    """One game instance: world, engine state, history, gates, and the main loop.

    Player input (navigation, choices, actions, save/load) arrives through the
    public methods; the loop itself runs as a single asyncio task so exactly one
    authored script is active at a time.
    """

    def __init__(self, content: ContentPack, *, settings: EngineSettings | None = None) -> None:
        self.content = content
        self.settings = settings or EngineSettings()

        history = HistoryStore(max_size=self.settings.max_history_size)
        navigation = NavigationController(history, skip_delay=self.settings.skip_delay_s)
        self.ctx = EngineContext(
            world=content.initial_state(),
            engine_state=EngineState(),
            history=history,
            navigation=navigation,
        )

        self.locations = LocationRegistry(content.locations, content.linker)
        self.catalog = EventCatalog(content)
        self.catalog.reset(self.ctx.world)
        self.actions = ActionResolver(global_actions=content.global_actions, locations=self.locations)
        self.scheduler = EventScheduler(self.catalog)

        self.accessible_locations: list[Location] = []
        self._running = asyncio.Event()
        self._pending_resume = False
        self._task: asyncio.Task[None] | None = None

    # region state accessors
    @property
    def world(self) -> dict[str, Any]:
        return self.ctx.world

    @property
    def engine_state(self) -> EngineState:
        return self.ctx.engine_state

    @property
    def history(self) -> HistoryStore:
        return self.ctx.history

    @property
    def navigation(self) -> NavigationController:
        return self.ctx.navigation

    @property
    def status(self) -> EngineStatus:
        return self.ctx.engine_state.status
    # endregion

    # region lifecycle
    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run(), name=f"engine:{self.content.project_id}")
        return self._task

    async def close(self) -> None:
        self.scheduler.abandon()
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def settle(self) -> None:
        """Yield to the loop until the engine waits on player input (or stops running)."""

        for _ in range(self.settings.settle_ticks):
            await asyncio.sleep(0)
            if self.is_suspended():
                return

    def is_suspended(self) -> bool:
        if self.status != EngineStatus.running:
            return True
        nav = self.navigation
        return nav.continue_gate.has_waiter() or nav.choice_gate.has_waiter() or nav.action_gate.has_waiter()

    def _transition(self, name: str) -> None:
        fsm = EngineFSM(self.ctx.engine_state)
        fsm.send(name)
        fsm.sync_status_to_model()
        self._sync_running()

    def _sync_running(self) -> None:
        if self.status == EngineStatus.running:
            self._running.set()
        else:
            self._running.clear()

    def new_game(self) -> None:
        logger.info("Starting new game for %s", self.content.project_id)
        if self.status != EngineStatus.loading:
            self._transition("start_loading")

        self.scheduler.abandon()
        self.navigation.reject_waiters()
        self._pending_resume = False

        self.ctx.world = self.content.initial_state()
        self.ctx.engine_state = EngineState(status=EngineStatus.loading, initialized=True)
        self.history.reset_history()
        self.catalog.reset(self.world)

        self._transition("finish_loading")

    def open_menu(self) -> None:
        self._transition("open_menu")

    def close_menu(self) -> None:
        self._transition("close_menu")
    # endregion

    # region save / load
    def save(self, *, r: redis.Redis, slot: int, name: str | None = None) -> SaveRecord:
        engine_copy = self.engine_state.model_copy(deep=True)
        engine_copy.status = EngineStatus.running

        record = SaveRecord(
            name=name or f"Save {slot}",
            timestamp=datetime.now(tz=UTC).isoformat(),
            game_state=copy.deepcopy(self.world),
            engine_state=engine_copy,
            history_state=self.history.get_history_data(),
        )
        write_save(r=r, project_id=self.content.project_id, slot=slot, record=record)
        logger.info(
            "Saved slot %d (event=%s step=%d)", slot, engine_copy.current_event, engine_copy.current_step
        )
        return record

    def load(self, *, r: redis.Redis, slot: int) -> SaveRecord:
        record = require_save(r=r, project_id=self.content.project_id, slot=slot)
        # Resolve the bookmark before touching anything so a bad save leaves the game as it was.
        if record.engine_state.current_event is not None:
            self.scheduler.locate(record.engine_state)

        logger.info(
            "Loading slot %d (event=%s step=%d)",
            slot,
            record.engine_state.current_event,
            record.engine_state.current_step,
        )
        if self.status != EngineStatus.loading:
            self._transition("start_loading")

        self.scheduler.abandon()
        self.navigation.reject_waiters()

        engine_state = record.engine_state.model_copy(deep=True)
        engine_state.status = EngineStatus.loading
        engine_state.initialized = True
        self.ctx.world = copy.deepcopy(record.game_state)
        self.ctx.engine_state = engine_state
        self.history.load_history_data(record.history_state)
        self.catalog.reset(self.world)
        self._pending_resume = engine_state.current_event is not None

        self._transition("finish_loading")
        return record
    # endregion

    # region player input
    def go_forward(self) -> None:
        self.navigation.go_forward()

    def go_back(self) -> None:
        self.navigation.go_back()

    def set_skip(self, enabled: bool) -> None:
        if enabled:
            self.navigation.enable_skip_mode()
        else:
            self.navigation.disable_skip_mode()

    def choose(self, choice: str) -> None:
        options = self.engine_state.choices
        if not self.navigation.choice_gate.has_waiter() or not options:
            raise InvalidOperationError("No choice is pending")
        if choice not in {o.branch for o in options}:
            raise InvalidOperationError(f"Choice {choice!r} was not offered")
        self.navigation.choose(choice)

    def submit_custom(self, value: Any) -> None:
        if not self.navigation.action_gate.has_waiter() or self.engine_state.custom_args is None:
            raise InvalidOperationError("No custom logic is pending")
        self.navigation.submit_custom(value)

    def execute_action(self, action_id: str) -> None:
        self._require_idle()
        self.actions.execute_action(action_id, self.world)
        self.catalog.update(self.world)
        self.navigation.wake()

    def travel(self, location_id: str) -> None:
        self._require_idle()
        target = self.locations.find(location_id)
        here = self.world.get("location_id")
        if isinstance(here, str) and here in self.locations:
            reachable = {loc.id for loc in self.locations.accessible_from(here, self.world)}
            if target.id not in reachable:
                raise InvalidOperationError(f"Location {location_id!r} is not accessible from {here!r}")
        elif not target.unlocked(self.world):
            raise InvalidOperationError(f"Location {location_id!r} is not unlocked")

        logger.info("Travel %s -> %s", here, location_id)
        self.world["location_id"] = target.id
        self.catalog.update(self.world)
        self.navigation.wake()

    def _require_idle(self) -> None:
        if self.status != EngineStatus.running:
            raise InvalidOperationError("Engine is not running")
        if self.engine_state.current_event is not None:
            raise InvalidOperationError("An event is in progress")
    # endregion

    # region main loop
    async def run(self) -> None:
        logger.info("Engine loop started for %s", self.content.project_id)
        while True:
            try:
                self.navigation.reject_waiters()
                self.catalog.update(self.world)
                await self._run_game_loop()
            except Interrupt:
                logger.debug("Script interrupted, back to base loop")
            except Exception:
                logger.exception("Engine error, returning to menu")
                self.scheduler.abandon()
                self._clear_bookmark()
                self.history.reset_history()
                if self.status == EngineStatus.running:
                    self._transition("open_menu")
            await self._running.wait()

    async def _run_game_loop(self) -> None:
        while self.status == EngineStatus.running:
            if self._pending_resume:
                self._pending_resume = False
                await self.scheduler.resume(self.ctx)
                self._finish_event()
                continue

            event = self.catalog.find_immediate(self.world)
            if event is not None:
                await self.scheduler.run_event(self.ctx, event)
                self._finish_event()
                continue

            self._calculate_info()
            logger.debug("Idle, waiting for an action")
            await self.navigation.action_gate.wait()

    def _finish_event(self) -> None:
        self.history.reset_history()
        self._clear_bookmark()
        self.catalog.update(self.world)

    def _clear_bookmark(self) -> None:
        state = self.engine_state
        state.current_event = None
        state.current_branch = None
        state.current_step = 0
        state.answers = {}
        state.checkpoint = None

    def _calculate_info(self) -> None:
        state = self.engine_state
        state.dialogue = None
        state.choices = None
        state.custom_args = None
        state.foreground = None

        location_id = self.world.get("location_id")
        if isinstance(location_id, str) and location_id in self.locations:
            state.background = self.locations.background_for(location_id, self.world)
            self.accessible_locations = self.locations.accessible_from(location_id, self.world)
        else:
            state.background = None
            self.accessible_locations = []

        self.actions.update_accessible(self.world)
    # endregion
