from __future__ import annotations

import logging
from typing import Callable

from nicegui import Client, ui

from server_panel.common.errors import LifecycleError
from server_panel.common.logging_config import attach_ui_log, detach_ui_log
from server_panel.constants import IPV6_TEST_URL
from server_panel.services.lifecycle import LifecycleMachine
from server_panel.state import LifecycleSnapshot, ServerState

POSITIVE = "#21BA45"
NEGATIVE = "#DB2828"


def describe_players(num_players: int) -> str:
    """Leading phrase of the online sentence, e.g. 'One player is'."""
    if num_players == 0:
        return "Nobody is"
    if num_players == 1:
        return "One player is"
    return f"{num_players} players are"


def online_summary(snapshot: LifecycleSnapshot) -> str:
    version = snapshot.server_version or "unknown"
    return f"{describe_players(snapshot.num_players)} online and the version is {version}."


class StatusPage:
    """Server status card: one renderer per ServerState, re-rendered on every transition."""

    def __init__(self, machine: LifecycleMachine) -> None:
        self.machine = machine
        machine.on_change = self.render
        self.container: ui.column | None = None
        self.error_label: ui.label | None = None
        self.activity_log: ui.log | None = None

        self._renderers: dict[ServerState, Callable[[LifecycleSnapshot], None]] = {
            ServerState.CHECKING: self._render_checking,
            ServerState.ONLINE: self._render_online,
            ServerState.OFFLINE: self._render_offline,
            ServerState.STARTING: self._render_starting,
            ServerState.WAITING_FOR_ONLINE: self._render_waiting,
        }

    # ---- Actions ----

    async def on_refresh_click(self) -> None:
        self._clear_error()
        await self.machine.refresh()

    async def on_start_click(self) -> None:
        self._clear_error()
        await self.machine.start_server()

    def on_error(self, error: LifecycleError) -> None:
        if self.error_label:
            self.error_label.text = str(error)
            self.error_label.visible = True
        if self.container:
            with self.container:
                ui.notify(error.message, type="negative")
        # Frozen states (waiting/checking) need a way out
        self.render()

    def _clear_error(self) -> None:
        if self.error_label:
            self.error_label.text = ""
            self.error_label.visible = False

    # ---- Rendering ----

    def _spinner_row(self, text: str) -> None:
        ui.label(text)
        ui.spinner(size="lg")
        if self.machine.last_error is not None:
            self._refresh_button()

    def _refresh_button(self) -> None:
        ui.button("Refresh", on_click=self.on_refresh_click).props("unelevated")

    def _status_line(self, color: str, text: str) -> None:
        with ui.row().classes("items-center gap-2"):
            ui.icon("circle").style(f"color: {color}")
            ui.label(text)

    def _render_checking(self, snapshot: LifecycleSnapshot) -> None:
        self._spinner_row("Checking server status.")

    def _render_waiting(self, snapshot: LifecycleSnapshot) -> None:
        self._spinner_row("Waiting for server to come online.")

    def _render_starting(self, snapshot: LifecycleSnapshot) -> None:
        self._spinner_row("The server is starting. Wait patiently.")

    def _render_online(self, snapshot: LifecycleSnapshot) -> None:
        self._status_line(POSITIVE, "The server is online.")
        ui.label(online_summary(snapshot))
        with ui.row().classes("gap-2"):
            self._refresh_button()
        with ui.column().classes("text-sm gap-1"):
            with ui.row().classes("items-center gap-1"):
                ui.label("To connect to this server, use")
                ui.label(snapshot.server_hostname or "-").classes("font-bold")
                ui.label("as the host name.")
            with ui.row().classes("items-center gap-1"):
                ui.label("Can't connect? Make sure you are")
                ui.link("on the IPv6 Internet", IPV6_TEST_URL, new_tab=True)
                ui.label(f"Or, connect using IPv4: {snapshot.server_ipv4_addr or '-'}")

    def _render_offline(self, snapshot: LifecycleSnapshot) -> None:
        self._status_line(NEGATIVE, "The server is offline.")
        with ui.row().classes("gap-2"):
            ui.button("Start Server", on_click=self.on_start_click).props(
                "unelevated color=primary"
            )
            self._refresh_button()

    def render(self) -> None:
        if self.container is None:
            return
        state, snapshot = self.machine.current()
        self.container.clear()
        with self.container:
            self._renderers[state](snapshot)

    def build(self) -> None:
        with ui.card().classes("w-full max-w-xl"):
            ui.label("Game server").classes("text-md font-medium")
            self.container = ui.column().classes("gap-2")
            self.error_label = ui.label("").style(f"color: {NEGATIVE}")
            self.error_label.visible = False
        with ui.expansion("Activity").classes("w-full max-w-xl"):
            self.activity_log = ui.log(max_lines=200).classes("w-full h-48")
        attach_ui_log(self.activity_log, session=self.machine.session)
        self.render()
        logging.debug("Status page built")

    def close_with(self, client: Client) -> None:
        """Tear down when NiceGUI deletes the client; reconnects keep the session alive."""
        client.on_delete(self.teardown)

    def teardown(self) -> None:
        self.machine.close()
        if self.activity_log is not None:
            detach_ui_log(self.activity_log)
