from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

from server_panel.common.errors import ErrorKind, ErrorSink, LifecycleError
from server_panel.common.logging_config import log_session
from server_panel.config import PanelConfig, config
from server_panel.services.poll_timer import PollTimer, Sleep
from server_panel.services.status_client import (
    Accepted,
    AlreadyRunning,
    Indeterminate,
    ParseFailure,
    Reachable,
    Rejected,
    StartResult,
    StatusResult,
    Unauthorized,
)
from server_panel.state import LifecycleSnapshot, ServerState


class StatusApi(Protocol):
    async def query_status(self, token: str) -> StatusResult: ...

    async def request_start(self, token: str) -> StartResult: ...


class LifecycleMachine:
    """
    Tracks one game server through CHECKING / ONLINE / OFFLINE / STARTING /
    WAITING_FOR_ONLINE and drives the bounded wait loop after a start.

    Every fatal condition goes to ``on_error`` exactly once and stops polling.
    External triggers (refresh, start_server, close) begin a new epoch; responses
    and timer callbacks belonging to an older epoch are dropped.
    """

    def __init__(
        self,
        client: StatusApi,
        token: str,
        on_error: ErrorSink,
        *,
        cfg: PanelConfig = config,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep | None = None,
        on_change: Callable[[], None] | None = None,
        session: str | None = None,
    ) -> None:
        self.client = client
        self._token = token
        self._on_error = on_error
        self.on_change = on_change
        self.session = session
        self.poll_interval_s = cfg.POLL_INTERVAL_S
        self.wait_timeout_s = cfg.WAIT_TIMEOUT_S
        self._clock = clock
        self._timer = PollTimer(sleep) if sleep is not None else PollTimer()

        self._state = ServerState.CHECKING
        self.snapshot = LifecycleSnapshot()
        self.last_error: LifecycleError | None = None
        self._epoch = 0
        self._closed = False

    # ---- Read-only view ----

    @property
    def state(self) -> ServerState:
        return self._state

    def current(self) -> tuple[ServerState, LifecycleSnapshot]:
        return self._state, self.snapshot

    @property
    def poll_pending(self) -> bool:
        return self._timer.active

    # ---- Internals ----

    def _set_state(self, state: ServerState) -> None:
        if state is not ServerState.WAITING_FOR_ONLINE:
            self.snapshot.wait_started_at = None
            self._timer.cancel()
        if state is not self._state:
            logging.debug("Server state %s -> %s", self._state.value, state.value)
        self._state = state
        if self.on_change:
            self.on_change()

    def _enter(self) -> None:
        # Records logged from here on (and from timers armed here) belong to this session
        log_session.set(self.session)

    def _new_epoch(self) -> int:
        self._epoch += 1
        self._timer.cancel()
        return self._epoch

    def _report(self, kind: ErrorKind, message: str, detail: str | None = None) -> None:
        error = LifecycleError(kind=kind, message=message, detail=detail)
        self.last_error = error
        logging.warning("%s", error)
        self._on_error(error)

    # ---- Operations ----

    async def refresh(self) -> None:
        """Manual or initial status check; never waits."""
        if self._closed:
            return
        self._enter()
        self._new_epoch()
        self.last_error = None
        self._set_state(ServerState.CHECKING)
        await self.check_status(no_wait=True)

    async def check_status(self, no_wait: bool) -> None:
        epoch = self._epoch
        result = await self.client.query_status(self._token)
        if epoch != self._epoch:
            logging.debug("Dropping stale status result %r", result)
            return

        if isinstance(result, Reachable):
            if result.online:
                snap = self.snapshot
                snap.num_players = result.players
                snap.server_version = result.version
                snap.server_hostname = result.hostname
                snap.server_ipv4_addr = result.ipv4_addr
                self._set_state(ServerState.ONLINE)
            elif no_wait:
                self._set_state(ServerState.OFFLINE)
            else:
                self.schedule_next_poll()
        elif isinstance(result, ParseFailure):
            self._report(
                ErrorKind.MALFORMED_RESPONSE,
                "Unable to check the status of the server",
                result.detail,
            )
        elif isinstance(result, Unauthorized):
            self._report(
                ErrorKind.UNAUTHORIZED,
                "The account you're using isn't authorized to use the server.",
            )
        elif isinstance(result, Indeterminate):
            if no_wait:
                code = result.status_code if result.status_code is not None else "no"
                self._report(
                    ErrorKind.INDETERMINATE,
                    f"Received a non-200 response ({code} status). See the log.",
                    result.detail or None,
                )
            else:
                self.schedule_next_poll()
        else:
            raise TypeError(f"Unexpected status result: {result!r}")

    def schedule_next_poll(self) -> None:
        started = self.snapshot.wait_started_at
        if self._state is not ServerState.WAITING_FOR_ONLINE or started is None:
            self._report(
                ErrorKind.NOT_WAITING,
                "Tried to schedule another status check but we're not waiting.",
            )
            return
        if self._clock() - started > self.wait_timeout_s:
            self._report(
                ErrorKind.TIMEOUT,
                "We've been waiting a while. Something probably went wrong.",
            )
            return
        logging.info("Next status check in %ss", self.poll_interval_s)
        epoch = self._epoch
        self._timer.start(self.poll_interval_s, lambda: self._on_poll_timer(epoch))

    async def _on_poll_timer(self, epoch: int) -> None:
        # A timer that outlived its wait (refresh, close, new start) is a no-op
        if epoch != self._epoch or self._state is not ServerState.WAITING_FOR_ONLINE:
            logging.debug("Ignoring stale poll timer (epoch %s)", epoch)
            return
        await self.check_status(no_wait=False)

    async def start_server(self) -> None:
        if self._closed:
            return
        self._enter()
        if self._state in (ServerState.STARTING, ServerState.WAITING_FOR_ONLINE):
            logging.warning("Start requested while already %s; ignoring", self._state.value)
            return
        epoch = self._new_epoch()
        self.last_error = None
        self._set_state(ServerState.STARTING)

        result = await self.client.request_start(self._token)
        if epoch != self._epoch:
            logging.debug("Dropping stale start result %r", result)
            return

        if isinstance(result, (Accepted, AlreadyRunning)):
            self.snapshot.wait_started_at = self._clock()
            self._set_state(ServerState.WAITING_FOR_ONLINE)
            # First check right away instead of after a full interval
            await self.check_status(no_wait=False)
        elif isinstance(result, Rejected):
            self._set_state(ServerState.OFFLINE)
            self._report(
                ErrorKind.START_REJECTED,
                "Unfortunately, the server failed to launch",
                result.detail,
            )
        else:
            raise TypeError(f"Unexpected start result: {result!r}")

    async def wait_idle(self) -> None:
        """Wait until the poll loop has nothing scheduled."""
        await self._timer.wait()

    def close(self) -> None:
        self._closed = True
        self._new_epoch()
