from __future__ import annotations

import asyncio

import pytest

from vnengine.core.errors import NavigationInterrupt, StateConsistencyWarning
from vnengine.core.gate import SuspensionGate


@pytest.mark.asyncio
async def test_second_wait_interrupts_first_waiter() -> None:
    gate: SuspensionGate[str] = SuspensionGate("Choice")

    first = gate.wait()
    second = gate.wait()

    assert first.done()
    assert isinstance(first.exception(), NavigationInterrupt)
    assert not second.done()
    assert gate.has_waiter()

    gate.resolve("left")
    assert await second == "left"
    assert not gate.has_waiter()


@pytest.mark.asyncio
async def test_resolve_runs_callback_before_waiter_is_fulfilled() -> None:
    seen: list[bool] = []
    gate: SuspensionGate[None] = SuspensionGate("Continue", on_resolve=lambda: seen.append(fut.done()))

    fut = gate.wait()
    gate.resolve(None)

    assert seen == [False]
    assert await fut is None


@pytest.mark.asyncio
async def test_reject_without_waiter_is_noop() -> None:
    gate: SuspensionGate[None] = SuspensionGate("Continue")
    gate.reject()
    assert not gate.has_waiter()


def test_resolve_without_waiter_warns() -> None:
    gate: SuspensionGate[None] = SuspensionGate("Continue")

    with pytest.warns(StateConsistencyWarning):
        gate.resolve(None)


@pytest.mark.asyncio
async def test_skip_mode_auto_resolves_new_waiter() -> None:
    calls: list[str] = []
    gate: SuspensionGate[None] = SuspensionGate("Continue", on_resolve=lambda: calls.append("cb"), skip_delay=0.01)
    gate.enable_skip()

    fut = gate.wait()
    assert await asyncio.wait_for(fut, timeout=1.0) is None
    assert calls == ["cb"]
    assert not gate.has_waiter()


@pytest.mark.asyncio
async def test_enable_skip_resolves_pending_waiter_immediately() -> None:
    gate: SuspensionGate[None] = SuspensionGate("Continue", skip_delay=10.0)
    fut = gate.wait()

    gate.enable_skip()

    assert fut.done()
    assert fut.result() is None
    gate.disable_skip()


@pytest.mark.asyncio
async def test_disable_skip_stops_auto_resolve() -> None:
    gate: SuspensionGate[None] = SuspensionGate("Continue", skip_delay=0.01)
    gate.enable_skip()
    fut = gate.wait()
    gate.disable_skip()

    await asyncio.sleep(0.05)
    assert not fut.done()

    gate.reject()
    assert isinstance(fut.exception(), NavigationInterrupt)
