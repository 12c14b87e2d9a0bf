from __future__ import annotations

from dataclasses import dataclass, replace

from server_panel import constants


@dataclass(frozen=True)
class PanelConfig:
    """Runtime configuration for the panel and its control API connection."""
    API_BASE_URL: str = "http://127.0.0.1:8000"
    STATUS_PATH: str = "serverstatus.json"
    START_PATH: str = "start_server"
    TOKEN: str = ""
    POLL_INTERVAL_S: float = 10.0
    WAIT_TIMEOUT_S: float = 120.0  # measured from the moment the start was accepted
    REQUEST_TIMEOUT_S: float = 30.0

    def __post_init__(self) -> None:
        if self.POLL_INTERVAL_S <= 0:
            raise ValueError("POLL_INTERVAL_S must be > 0")
        if self.WAIT_TIMEOUT_S < 0:
            raise ValueError("WAIT_TIMEOUT_S must be >= 0")
        if self.REQUEST_TIMEOUT_S <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")

    @classmethod
    def from_env(cls) -> "PanelConfig":
        return cls(
            API_BASE_URL=constants.API_BASE_URL,
            STATUS_PATH=constants.STATUS_PATH,
            START_PATH=constants.START_PATH,
            TOKEN=constants.API_TOKEN,
            POLL_INTERVAL_S=constants.POLL_INTERVAL_S,
            WAIT_TIMEOUT_S=constants.WAIT_TIMEOUT_S,
            REQUEST_TIMEOUT_S=constants.REQUEST_TIMEOUT_S,
        )

    def with_overrides(self, **overrides) -> "PanelConfig":
        """Return a copy with every non-None override applied (CLI flags)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


# Export a default instance for convenience
config = PanelConfig.from_env()
