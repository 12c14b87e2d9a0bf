from __future__ import annotations

import logging
import os
import sys
import threading
import weakref
from contextvars import ContextVar

_LEVEL_COLORS = {
    "TRACE": "\033[32m",
    "DEBUG": "\033[36m",
    "INFO": "\033[37m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[41m",
}
_RESET = "\033[0m"
_DIM = "\033[2m"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# httpx request lines are only shown at TRACE or when explicitly enabled
TRACE_ENABLED = os.getenv("SERVER_PANEL_TRACE", "0").lower() in ("1", "true", "yes", "on")


class AnsiColorFormatter(logging.Formatter):
    """Compact 'HH:MM:SS LEVEL logger: msg' lines, colored when stderr is a tty."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.colored:
            return line
        ts, _, rest = line.partition(" ")
        color = _LEVEL_COLORS.get(record.levelname.upper())
        if color:
            rest = rest.replace(record.levelname, f"{color}{record.levelname}{_RESET}", 1)
        return f"{_DIM}{ts}{_RESET} {rest}"


# ---- NiceGUI activity log handler ----

# Browser session that produced the current record; None for app-wide records
log_session: ContextVar[str | None] = ContextVar("log_session", default=None)

# widget ref -> session it belongs to (None receives everything)
_ui_log_targets: dict[weakref.ref, str | None] = {}
_ui_lock = threading.Lock()


class UiLogHandler(logging.Handler):
    """
    Mirror log records into attached NiceGUI ui.log widgets.

    A record logged while ``log_session`` is set only reaches widgets attached
    for that session; records outside any session reach every widget.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        if not _ui_log_targets:
            return
        session = log_session.get()
        msg = self.format(record)
        with _ui_lock:
            for ref, owner in list(_ui_log_targets.items()):
                widget = ref()
                if widget is None or getattr(widget, "is_deleted", False):
                    _ui_log_targets.pop(ref, None)
                    continue
                if session is not None and owner is not None and owner != session:
                    continue
                widget.push(msg)


def attach_ui_log(log_widget, session: str | None = None) -> None:
    """Register a ui.log widget as a sink for records of ``session`` (all records if None)."""
    with _ui_lock:
        _ui_log_targets[weakref.ref(log_widget)] = session


def detach_ui_log(log_widget) -> None:
    with _ui_lock:
        _ui_log_targets.pop(weakref.ref(log_widget), None)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Configure the root logger once:
      - colored console handler on stderr
      - optional handler feeding the page activity logs
    Calling it again only updates the level.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        logger.addHandler(console)

    if add_ui_handler and not any(isinstance(h, UiLogHandler) for h in logger.handlers):
        logger.addHandler(UiLogHandler(level=level))

    # httpx logs every request at INFO
    verbose_http = TRACE_ENABLED or level <= TRACE
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose_http else logging.WARNING)
    return logger
