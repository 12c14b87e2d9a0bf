from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

Sleep = Callable[[float], Awaitable[None]]


class PollTimer:
    """
    One-shot cancellable timer backed by an asyncio task.

    The callback may re-arm the timer from inside its own task; arming or
    cancelling from within the running callback never cancels that task.
    """

    def __init__(self, sleep: Sleep = asyncio.sleep) -> None:
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._cancelled: set[asyncio.Task] = set()
        self.delay: float | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self.delay = delay
        self._task = asyncio.create_task(self._run(delay, callback))

    def cancel(self) -> None:
        task = self._task
        self._task = None
        self.delay = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            self._cancelled.add(task)
            task.add_done_callback(self._cancelled.discard)

    async def _run(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        await self._sleep(delay)
        try:
            await callback()
        except Exception:
            logging.exception("Poll timer callback failed")
            raise

    async def wait(self) -> None:
        """Wait until no timer is armed, following re-arms made by callbacks."""
        while self._task is not None or self._cancelled:
            if self._cancelled:
                pending = list(self._cancelled)
                await asyncio.gather(*pending, return_exceptions=True)
                self._cancelled.difference_update(pending)
                continue
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            if self._task is task:
                self._task = None
