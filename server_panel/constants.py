from __future__ import annotations

import logging
import os

# Linked from the connection info when the hostname does not resolve over IPv6
IPV6_TEST_URL = "https://ipv6test.google.com/"

# Game server control API (what the panel talks to)
API_BASE_URL: str = os.getenv("SERVER_PANEL_API_URL", "http://127.0.0.1:8000")
STATUS_PATH: str = os.getenv("SERVER_PANEL_STATUS_PATH", "serverstatus.json")
START_PATH: str = os.getenv("SERVER_PANEL_START_PATH", "start_server")
API_TOKEN: str = os.getenv("SERVER_PANEL_TOKEN", "")

# Wait loop timing
POLL_INTERVAL_S: float = float(os.getenv("SERVER_PANEL_POLL_INTERVAL_S", "10"))
WAIT_TIMEOUT_S: float = float(os.getenv("SERVER_PANEL_WAIT_TIMEOUT_S", "120"))
REQUEST_TIMEOUT_S: float = float(os.getenv("SERVER_PANEL_REQUEST_TIMEOUT_S", "30"))

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("SERVER_PANEL_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PANEL_PORT", "8080"))


def _resolve_log_level() -> int:
    s = os.getenv("SERVER_PANEL_LOG_LEVEL")
    if s:
        name = s.strip().upper()
        mapping = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return mapping.get(name, logging.INFO)
    else:
        return logging.INFO


LOG_LEVEL: int = _resolve_log_level()
