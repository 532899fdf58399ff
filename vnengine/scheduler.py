from __future__ import annotations

import copy
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from vnengine.api.models import ChoiceOption, Dialogue, EngineState
from vnengine.content.registry import AuthoredEvent, ScriptFn
from vnengine.core.context import EngineContext
from vnengine.core.errors import JumpInterrupt, NavigationInterrupt, UnknownEventError
from vnengine.core.history import HistoryEntry, HistoryKind
from vnengine.events import EventCatalog

logger = logging.getLogger(__name__)


class ScriptAPI:
    """What authored scripts get to call.

    Suspending calls (`show_text`, `show_choices`, `run_custom_logic`, `jump`)
    each count as one step of the active function. Presentation setters do not.
    """

    def __init__(self, scheduler: EventScheduler, ctx: EngineContext) -> None:
        self._scheduler = scheduler
        self._ctx = ctx

    async def show_text(self, text: str, speaker: str | None = None) -> None:
        ctx = self._ctx
        if not self._scheduler.count_step(ctx):
            return

        state = ctx.engine_state
        state.dialogue = Dialogue(text=text, speaker=speaker)
        self._scheduler.record(ctx, HistoryKind.text, {"text": text, "speaker": speaker})
        await ctx.navigation.continue_gate.wait()
        state.dialogue = None

    async def show_choices(self, choices: Sequence[ChoiceOption | Mapping[str, Any]]) -> str | None:
        ctx = self._ctx
        live = self._scheduler.count_step(ctx)
        state = ctx.engine_state
        step = state.current_step
        if not live:
            answer = state.answers.get(step)
            self._scheduler.select_branch(answer)
            return answer

        options = [c if isinstance(c, ChoiceOption) else ChoiceOption.model_validate(c) for c in choices]
        state.choices = options
        self._scheduler.record(ctx, HistoryKind.choice, {"choices": [o.model_dump() for o in options]})
        choice = await ctx.navigation.choice_gate.wait()
        state.choices = None
        state.answers[step] = choice
        self._scheduler.select_branch(choice)
        return choice

    async def run_custom_logic(self, args: Mapping[str, Any]) -> Any:
        ctx = self._ctx
        live = self._scheduler.count_step(ctx)
        state = ctx.engine_state
        step = state.current_step
        if not live:
            return state.answers.get(step)

        state.custom_args = dict(args)
        result = await ctx.navigation.action_gate.wait()
        state.custom_args = None
        state.answers[step] = result
        return result

    async def jump(self, event_id: str) -> None:
        self._scheduler.count_step(self._ctx)
        raise JumpInterrupt(event_id)

    def set_background(self, image: str | None) -> None:
        self._ctx.engine_state.background = image

    def set_foreground(self, images: Sequence[str]) -> None:
        self._ctx.engine_state.foreground = list(images)

    def add_foreground(self, image: str) -> None:
        state = self._ctx.engine_state
        state.foreground = [*(state.foreground or []), image]

    def replace_foreground(self, image: str) -> None:
        state = self._ctx.engine_state
        if not state.foreground:
            state.foreground = [image]
        else:
            state.foreground = [*state.foreground[:-1], image]


class EventScheduler:
    """Runs authored scripts and resumes them by replay.

    Nothing about an in-flight coroutine is persisted. The bookmark (event,
    branch, step) plus the answers given so far is enough to re-run the
    function from its checkpoint and fast-forward to where the player was.

    Replay assumes everything before the bookmark is deterministic given the
    checkpointed world. Side effects outside the world state fire again.
    """

    def __init__(self, catalog: EventCatalog) -> None:
        self.catalog = catalog
        self.replay_mode = False
        self.target_step = 0
        self._epoch = 0
        self._event: AuthoredEvent | None = None
        self._next_branch: str | None = None
        self._reentering = False

    def abandon(self) -> None:
        """Make the running script unwind completely on its next interrupt."""

        self._epoch += 1
        self._event = None
        self._next_branch = None
        self.replay_mode = False
        self.target_step = 0

    def locate(self, state: EngineState) -> tuple[AuthoredEvent, str | None]:
        if state.current_event is None:
            raise UnknownEventError("No current event to resume")
        event = self.catalog.find(state.current_event)
        branch = state.current_branch
        if branch is not None and branch not in event.branches:
            raise UnknownEventError(f"Unknown branch {branch!r} of event {event.id!r}")
        return event, branch

    async def run_event(self, ctx: EngineContext, event: AuthoredEvent) -> None:
        logger.info("Running event %s", event.id)
        self._enter(ctx, event, None)
        await self._drive(ctx)

    async def resume(self, ctx: EngineContext) -> None:
        event, branch = self.locate(ctx.engine_state)
        logger.info(
            "Resuming event %s (branch=%s) at step %d", event.id, branch, ctx.engine_state.current_step
        )
        self._event = event
        target = ctx.engine_state.current_step
        if ctx.history.can_go_forward():
            # Saved while rewound: keep walking the recorded timeline first.
            target = await self._play_back(ctx, self._epoch)
        self._start_replay(ctx, target)
        await self._drive(ctx)

    def count_step(self, ctx: EngineContext) -> bool:
        """Advance the step counter. Returns False while the call is being replayed."""

        state = ctx.engine_state
        state.current_step += 1
        if self.replay_mode:
            if state.current_step < self.target_step:
                return False
            self.replay_mode = False
            logger.info("Replay reached step %d of %s", state.current_step, state.current_event)
        return True

    def record(self, ctx: EngineContext, kind: HistoryKind, payload: dict[str, Any]) -> None:
        state = ctx.engine_state
        if state.current_event is None:
            raise RuntimeError("record() called outside of an event")

        entry = HistoryEntry(
            kind=kind,
            event_id=state.current_event,
            branch=state.current_branch,
            step=state.current_step,
            payload=payload,
            game_state=ctx.snapshot_world(),
            engine_state=ctx.snapshot_engine(),
        )

        present = ctx.history.get_present()
        reentering, self._reentering = self._reentering, False
        if (
            reentering
            and present is not None
            and (present.event_id, present.branch, present.step) == (entry.event_id, entry.branch, entry.step)
        ):
            # The step restored by a load is shown again; it is already in history.
            ctx.history.replace_present(entry)
        else:
            ctx.history.record(entry)

    def select_branch(self, choice: str | None) -> None:
        event = self._event
        if event is not None and choice is not None and choice in event.branches:
            self._next_branch = choice

    def _function_for(self, event: AuthoredEvent, branch: str | None) -> ScriptFn:
        if branch is None:
            return event.execute
        return event.branches[branch].execute

    def _enter(self, ctx: EngineContext, event: AuthoredEvent, branch: str | None) -> None:
        state = ctx.engine_state
        state.current_event = event.id
        state.current_branch = branch
        state.current_step = 0
        state.answers = {}
        state.checkpoint = ctx.snapshot_world()
        if branch is None and event.foreground:
            state.foreground = [event.foreground]

        self._event = event
        self._next_branch = None
        self.replay_mode = False
        self.target_step = 0
        self._reentering = False

    def _start_replay(self, ctx: EngineContext, target_step: int) -> None:
        state = ctx.engine_state
        if state.checkpoint is not None:
            ctx.world = copy.deepcopy(state.checkpoint)
        state.current_step = 0
        state.dialogue = None
        state.choices = None
        state.custom_args = None

        self._next_branch = None
        self.replay_mode = True
        self.target_step = target_step
        self._reentering = True

    def _resolve_jump(self, event: AuthoredEvent, target: str) -> tuple[AuthoredEvent, str | None]:
        if target in event.branches:
            return event, target
        return self.catalog.find(target), None

    async def _drive(self, ctx: EngineContext) -> None:
        epoch = self._epoch
        while True:
            event = self._event
            if event is None:
                raise NavigationInterrupt()
            execute = self._function_for(event, ctx.engine_state.current_branch)

            try:
                await execute(ScriptAPI(self, ctx), ctx.world)
            except JumpInterrupt as jump:
                if epoch != self._epoch:
                    raise
                target_event, target_branch = self._resolve_jump(event, jump.target)
                logger.info("Jump from %s to %s (branch=%s)", event.id, target_event.id, target_branch)
                self._enter(ctx, target_event, target_branch)
                continue
            except NavigationInterrupt:
                if epoch != self._epoch:
                    raise
                target = await self._play_back(ctx, epoch)
                self._start_replay(ctx, target)
                continue

            if epoch != self._epoch:
                raise NavigationInterrupt()

            if self._next_branch is not None:
                self._enter(ctx, event, self._next_branch)
                continue

            logger.info("Event %s finished", event.id)
            self._event = None
            return

    async def _play_back(self, ctx: EngineContext, epoch: int) -> int:
        """Walk the history from `present` until the player is back at the live edge.

        Returns the step to resume the script at.
        """

        nav = ctx.navigation
        target = ctx.engine_state.current_step
        while True:
            entry = ctx.history.get_present()
            if entry is None:
                return target

            self._restore(ctx, entry)
            target = entry.step + 1
            try:
                if entry.kind == HistoryKind.choice:
                    choice = await nav.choice_gate.wait()
                else:
                    await nav.continue_gate.wait()
                    continue
            except NavigationInterrupt:
                if epoch != self._epoch:
                    raise
                continue

            # A choice made on a played-back entry starts a new timeline from that step.
            logger.info("Choice %r taken at step %d of %s, dropping redo", choice, entry.step, entry.event_id)
            ctx.history.discard_future()
            ctx.history.go_forward()
            ctx.engine_state.answers[entry.step] = choice
            ctx.engine_state.choices = None
            return entry.step + 1

    def _restore(self, ctx: EngineContext, entry: HistoryEntry) -> None:
        restored = EngineState.model_validate(entry.engine_state)
        restored.status = ctx.engine_state.status
        restored.initialized = ctx.engine_state.initialized
        ctx.engine_state = restored
        ctx.world = copy.deepcopy(entry.game_state)
        self._event = self.catalog.find(entry.event_id)
