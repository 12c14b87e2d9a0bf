from __future__ import annotations

import logging

import pytest

from server_panel import constants
from server_panel.common.errors import ErrorKind, LifecycleError
from server_panel.common.logging_config import (
    TRACE,
    AnsiColorFormatter,
    UiLogHandler,
    attach_ui_log,
    configure_logging,
    detach_ui_log,
    log_session,
)
from server_panel.config import PanelConfig
from server_panel.main import _resolve_log_level, build_parser
from tests.utils.fakes import FakeLogWidget

pytestmark = pytest.mark.unit


# ---- PanelConfig ----


def test_defaults_match_wait_loop_timing():
    cfg = PanelConfig()

    assert cfg.POLL_INTERVAL_S == 10.0
    assert cfg.WAIT_TIMEOUT_S == 120.0
    assert cfg.STATUS_PATH == "serverstatus.json"
    assert cfg.START_PATH == "start_server"


def test_from_env_reads_constants(monkeypatch):
    monkeypatch.setattr(constants, "API_BASE_URL", "https://mc.example.org")
    monkeypatch.setattr(constants, "API_TOKEN", "abc")
    monkeypatch.setattr(constants, "WAIT_TIMEOUT_S", 300.0)

    cfg = PanelConfig.from_env()

    assert cfg.API_BASE_URL == "https://mc.example.org"
    assert cfg.TOKEN == "abc"
    assert cfg.WAIT_TIMEOUT_S == 300.0


def test_constants_hold_only_settings():
    names = {n for n in vars(constants) if n.isupper()}

    assert names == {
        "IPV6_TEST_URL",
        "API_BASE_URL",
        "STATUS_PATH",
        "START_PATH",
        "API_TOKEN",
        "POLL_INTERVAL_S",
        "WAIT_TIMEOUT_S",
        "REQUEST_TIMEOUT_S",
        "SERVER_HOST",
        "SERVER_PORT",
        "LOG_LEVEL",
    }


def test_with_overrides_skips_none():
    cfg = PanelConfig(TOKEN="env-token").with_overrides(TOKEN=None, POLL_INTERVAL_S=5.0)

    assert cfg.TOKEN == "env-token"
    assert cfg.POLL_INTERVAL_S == 5.0


@pytest.mark.parametrize(
    "kwargs",
    [{"POLL_INTERVAL_S": 0}, {"WAIT_TIMEOUT_S": -1}, {"REQUEST_TIMEOUT_S": 0}],
)
def test_invalid_timing_rejected(kwargs):
    with pytest.raises(ValueError):
        PanelConfig(**kwargs)


# ---- CLI ----


@pytest.mark.parametrize(
    "argv, level",
    [
        (["--log-level", "TRACE"], TRACE),
        (["--log-level", "ERROR"], logging.ERROR),
        (["-vvv"], TRACE),
        (["-vv"], logging.DEBUG),
        (["-v"], logging.INFO),
        (["-q"], logging.WARNING),
        ([], constants.LOG_LEVEL),
    ],
)
def test_resolve_log_level(argv, level):
    args = build_parser().parse_args(argv)

    assert _resolve_log_level(args) == level


def test_parser_timing_flags():
    args = build_parser().parse_args(["--poll-interval", "2.5", "--wait-timeout", "30", "--token", "t"])

    assert args.poll_interval == 2.5
    assert args.wait_timeout == 30.0
    assert args.token == "t"
    assert args.api_url is None


# ---- logging ----


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("server_panel", level, __file__, 1, msg, None, None)


def test_plain_formatter_output():
    line = AnsiColorFormatter(colored=False).format(_record(logging.WARNING, "hello"))

    assert line.endswith("WARNING server_panel: hello")
    assert "\033[" not in line


def test_ui_handler_pushes_to_attached_widgets():
    widget = FakeLogWidget()
    handler = UiLogHandler()
    attach_ui_log(widget)
    try:
        handler.emit(_record(logging.ERROR, "start rejected"))
    finally:
        detach_ui_log(widget)
    handler.emit(_record(logging.ERROR, "after detach"))

    assert len(widget.lines) == 1
    assert widget.lines[0].endswith("[ERROR] start rejected")


def test_ui_handler_routes_session_records_to_their_own_widget():
    mine, other, shared = FakeLogWidget(), FakeLogWidget(), FakeLogWidget()
    handler = UiLogHandler()
    attach_ui_log(mine, session="tab-1")
    attach_ui_log(other, session="tab-2")
    attach_ui_log(shared)
    try:
        token = log_session.set("tab-1")
        handler.emit(_record(logging.WARNING, "GET -> 502 Bad Gateway: upstream down"))
        log_session.reset(token)
        # App-wide record, logged outside any session
        handler.emit(_record(logging.INFO, "Control API: http://api.test"))
    finally:
        for widget in (mine, other, shared):
            detach_ui_log(widget)

    assert [line.split(" ", 1)[1] for line in mine.lines] == [
        "[WARNING] GET -> 502 Bad Gateway: upstream down",
        "[INFO] Control API: http://api.test",
    ]
    assert [line.split(" ", 1)[1] for line in other.lines] == ["[INFO] Control API: http://api.test"]
    assert len(shared.lines) == 2


def test_configure_logging_is_idempotent():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        configure_logging(logging.DEBUG)
        added = [h for h in root.handlers if h not in before]
        configure_logging(logging.DEBUG)
        assert [h for h in root.handlers if h not in before] == added
        assert sum(isinstance(h, UiLogHandler) for h in root.handlers) == 1
    finally:
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
        root.setLevel(level)


def test_error_str_includes_detail():
    err = LifecycleError(ErrorKind.START_REJECTED, "Unfortunately, the server failed to launch", "quota")

    assert str(err) == "Unfortunately, the server failed to launch: quota"
    assert str(LifecycleError(ErrorKind.TIMEOUT, "waited")) == "waited"
