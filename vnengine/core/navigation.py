from __future__ import annotations

import logging
from typing import Any

from vnengine.core.gate import DEFAULT_SKIP_DELAY_S, SuspensionGate
from vnengine.core.history import HistoryStore

logger = logging.getLogger(__name__)


class NavigationController:
    """Turns forward/back intents into gate resolutions and history moves.

    Navigation input is not addressed to a gate; the controller works out
    which suspension is live and applies the matching history step before
    releasing or cancelling it.
    """

    def __init__(self, history: HistoryStore, *, skip_delay: float = DEFAULT_SKIP_DELAY_S) -> None:
        self.history = history
        # Advancing a text line consumes one redo entry (or commits the present one).
        self.continue_gate: SuspensionGate[None] = SuspensionGate(
            "Continue", on_resolve=history.go_forward, skip_delay=skip_delay
        )
        self.choice_gate: SuspensionGate[str] = SuspensionGate("Choice", skip_delay=skip_delay)
        self.action_gate: SuspensionGate[Any] = SuspensionGate("Action", skip_delay=skip_delay)

    def go_forward(self) -> None:
        if self.continue_gate.has_waiter():
            logger.debug("Going forward")
            self.continue_gate.resolve(None)
        elif self.choice_gate.has_waiter() and self.history.can_go_forward():
            # The choice was already made once; redo it instead of prompting again.
            self.history.go_forward()
            self.choice_gate.reject()
        else:
            self.continue_gate.reject()
            self.choice_gate.reject()

    def go_back(self) -> None:
        if not self.history.can_go_back():
            logger.debug("Can't go back, history is empty")
        else:
            logger.debug("Going back in history")
            self.history.go_back()
        self.continue_gate.reject()
        self.choice_gate.reject()

    def choose(self, choice: str) -> None:
        self.choice_gate.resolve(choice)

    def submit_custom(self, value: Any) -> None:
        self.action_gate.resolve(value)

    def wake(self) -> None:
        """Release the idle loop if it is waiting for a world action."""

        if self.action_gate.has_waiter():
            self.action_gate.resolve(None)

    def reject_waiters(self) -> None:
        self.continue_gate.reject()
        self.choice_gate.reject()
        self.action_gate.reject()

    def enable_skip_mode(self) -> None:
        self.continue_gate.enable_skip()

    def disable_skip_mode(self) -> None:
        self.continue_gate.disable_skip()

    @property
    def skip_enabled(self) -> bool:
        return self.continue_gate.skip_enabled
