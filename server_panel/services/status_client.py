from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Union

import httpx

from server_panel.config import PanelConfig, config


# ---- Status query outcomes ----


@dataclass(frozen=True)
class Reachable:
    """HTTP 200 with a well-formed body. The optional fields are only set when online."""

    online: bool
    players: int = 0
    version: str | None = None
    hostname: str | None = None
    ipv4_addr: str | None = None


@dataclass(frozen=True)
class ParseFailure:
    detail: str


@dataclass(frozen=True)
class Unauthorized:
    pass


@dataclass(frozen=True)
class Indeterminate:
    """Any other status code (status_code set) or a transport failure (status_code None)."""

    status_code: int | None = None
    detail: str = ""


StatusResult = Union[Reachable, ParseFailure, Unauthorized, Indeterminate]


# ---- Start request outcomes ----


@dataclass(frozen=True)
class Accepted:
    pass


@dataclass(frozen=True)
class AlreadyRunning:
    pass


@dataclass(frozen=True)
class Rejected:
    detail: str


StartResult = Union[Accepted, AlreadyRunning, Rejected]


def _optional_str(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"'{key}' must be a string, got {type(value).__name__}")


def parse_status_payload(text: str) -> Reachable:
    """
    Parse a status body: {online: bool, players?: int, version?: str, hostname?: str, ipv4_addr?: str}.
    Raises ValueError when the body is not valid JSON or a field has the wrong type.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError(f"Expected JSON object, got {type(payload).__name__}")

    online = payload.get("online")
    if not isinstance(online, bool):
        raise ValueError("'online' must be a boolean")
    if not online:
        return Reachable(online=False)

    players = payload.get("players")
    if players is None:
        players = 0
    # bool is an int subclass; reject it explicitly
    if isinstance(players, bool) or not isinstance(players, int) or players < 0:
        raise ValueError(f"'players' must be a non-negative integer, got {players!r}")

    return Reachable(
        online=True,
        players=players,
        version=_optional_str(payload, "version"),
        hostname=_optional_str(payload, "hostname"),
        ipv4_addr=_optional_str(payload, "ipv4_addr"),
    )


class StatusClient:
    """
    Issues the two authenticated requests of the control API and maps each HTTP
    outcome to a domain result. Performs no retries and never raises for
    HTTP or transport failures.
    """

    def __init__(
        self, cfg: PanelConfig = config, http: httpx.AsyncClient | None = None
    ) -> None:
        self.status_path = cfg.STATUS_PATH
        self.start_path = cfg.START_PATH
        self._http = http or httpx.AsyncClient(
            base_url=cfg.API_BASE_URL,
            headers={"Accept": "application/json"},
            timeout=cfg.REQUEST_TIMEOUT_S,
        )

    @staticmethod
    def _auth(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def query_status(self, token: str) -> StatusResult:
        try:
            response = await self._http.get(self.status_path, headers=self._auth(token))
        except httpx.HTTPError as e:
            logging.warning("GET %s failed: %s", self.status_path, e)
            return Indeterminate(detail=f"{type(e).__name__}: {e}")

        if response.status_code == 200:
            try:
                return parse_status_payload(response.text)
            except ValueError as e:
                logging.error("Malformed status body from %s: %s", response.url, e)
                return ParseFailure(detail=str(e))
        if response.status_code == 403:
            logging.warning("GET %s -> 403 Forbidden", response.url)
            return Unauthorized()

        logging.warning(
            "GET %s -> %s %s: %s",
            response.url,
            response.status_code,
            response.reason_phrase,
            response.text,
        )
        return Indeterminate(status_code=response.status_code, detail=response.text)

    async def request_start(self, token: str) -> StartResult:
        try:
            response = await self._http.post(self.start_path, headers=self._auth(token))
        except httpx.HTTPError as e:
            logging.warning("POST %s failed: %s", self.start_path, e)
            return Rejected(detail=f"{type(e).__name__}: {e}")

        if response.status_code == 200:
            # The instance has booted; the game server itself may still be coming up
            logging.info("Start request accepted")
            return Accepted()
        if response.status_code == 409:
            logging.info("Start request returned 409: server was already running")
            return AlreadyRunning()

        logging.warning(
            "POST %s -> %s %s: %s",
            response.url,
            response.status_code,
            response.reason_phrase,
            response.text,
        )
        return Rejected(detail=response.text)

    async def aclose(self) -> None:
        await self._http.aclose()


# Shared by every page; built on first use so CLI overrides apply
shared_client: StatusClient | None = None


def get_shared_client(cfg: PanelConfig) -> StatusClient:
    global shared_client
    if shared_client is None:
        shared_client = StatusClient(cfg)
    return shared_client


async def close_shared_client() -> None:
    global shared_client
    if shared_client is not None:
        await shared_client.aclose()
        shared_client = None
