from __future__ import annotations

import asyncio
import logging
import warnings
from collections.abc import Callable
from typing import Generic, TypeVar

from vnengine.core.errors import Interrupt, NavigationInterrupt, StateConsistencyWarning

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SKIP_DELAY_S = 0.05


class SuspensionGate(Generic[T]):
    """Single-slot cancellable wait.

    Contract:
      - at most one pending waiter; `wait()` rejects the previous one first.
      - `resolve()` runs the resolve-callback before the waiter is fulfilled.
      - in skip mode each new waiter auto-resolves after `skip_delay` seconds.
    """

    def __init__(
        self,
        name: str,
        *,
        interrupt: type[Interrupt] = NavigationInterrupt,
        on_resolve: Callable[[], None] | None = None,
        skip_delay: float = DEFAULT_SKIP_DELAY_S,
    ) -> None:
        self.name = name
        self._interrupt = interrupt
        self._on_resolve = on_resolve
        self._skip_delay = skip_delay
        self._skip = False
        self._future: asyncio.Future[T | None] | None = None
        self._skip_handle: asyncio.TimerHandle | None = None

    @property
    def skip_enabled(self) -> bool:
        return self._skip

    def has_waiter(self) -> bool:
        return self._future is not None

    def wait(self) -> asyncio.Future[T | None]:
        self.reject()

        loop = asyncio.get_running_loop()
        fut: asyncio.Future[T | None] = loop.create_future()
        self._future = fut

        if self._skip:
            self._skip_handle = loop.call_later(self._skip_delay, self._auto_resolve, fut)
        return fut

    def resolve(self, value: T | None = None) -> None:
        fut = self._future
        if fut is None:
            msg = f"resolve{self.name} without waiter"
            logger.warning(msg)
            warnings.warn(msg, StateConsistencyWarning, stacklevel=2)
            return

        if self._on_resolve is not None:
            self._on_resolve()

        self._clear()
        if not fut.done():
            fut.set_result(value)

    def reject(self) -> None:
        fut = self._future
        if fut is None:
            return
        self._clear()
        if not fut.done():
            fut.set_exception(self._interrupt())

    def enable_skip(self) -> None:
        self._skip = True
        if self._future is not None:
            self.resolve(None)

    def disable_skip(self) -> None:
        self._skip = False
        if self._skip_handle is not None:
            self._skip_handle.cancel()
            self._skip_handle = None

    def _auto_resolve(self, fut: asyncio.Future[T | None]) -> None:
        self._skip_handle = None
        # The waiter may have been replaced or cancelled since the timer was armed.
        if self._skip and self._future is fut:
            self.resolve(None)

    def _clear(self) -> None:
        self._future = None
        if self._skip_handle is not None:
            self._skip_handle.cancel()
            self._skip_handle = None
