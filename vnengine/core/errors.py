from __future__ import annotations


class Interrupt(Exception):
    """Control-flow signal that abandons the script awaiting a gate.

    Scripts must let it propagate; only the scheduler catches it.
    """


class NavigationInterrupt(Interrupt):
    """A pending suspension was cancelled by navigation, new game, or load."""

    def __init__(self, message: str = "Script interrupted by navigation") -> None:
        super().__init__(message)


class JumpInterrupt(Interrupt):
    """Raised by `jump()` to end the current function and enter another one."""

    def __init__(self, target: str) -> None:
        super().__init__(f"Jump to {target!r}")
        self.target = target


class UnknownActionError(LookupError):
    pass


class UnknownEventError(LookupError):
    pass


class UnknownLocationError(LookupError):
    pass


class SaveNotFoundError(LookupError):
    pass


class InvalidOperationError(RuntimeError):
    """The operation is not allowed in the current engine or world state."""


class StateConsistencyWarning(UserWarning):
    """A gate was resolved while nothing was waiting on it."""
