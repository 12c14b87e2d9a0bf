from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from server_panel.config import PanelConfig
from server_panel.services.lifecycle import LifecycleMachine
from tests.utils.fakes import TOKEN, ErrorRecorder, FakeClock, ScriptedStatusApi

pytest_plugins = ["nicegui.testing.user_plugin"]

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable


@pytest.fixture
def cfg() -> PanelConfig:
    """Production timing: 10s poll interval, 120s wait timeout."""
    return PanelConfig(API_BASE_URL="http://api.test", TOKEN=TOKEN)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def errors() -> ErrorRecorder:
    return ErrorRecorder()


@pytest.fixture
async def make_machine(
    cfg: PanelConfig, clock: FakeClock, errors: ErrorRecorder
) -> AsyncIterator[Callable[..., LifecycleMachine]]:
    """
    Build a LifecycleMachine wired to the fake clock and error recorder.
    Machines still polling at teardown are closed and drained.
    """
    machines: list[LifecycleMachine] = []

    def _make(api: ScriptedStatusApi, **kwargs) -> LifecycleMachine:
        kwargs.setdefault("cfg", cfg)
        machine = LifecycleMachine(
            api, TOKEN, errors, clock=clock, sleep=clock.sleep, **kwargs
        )
        machines.append(machine)
        return machine

    yield _make

    for machine in machines:
        machine.close()
        await machine.wait_idle()
