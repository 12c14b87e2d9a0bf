from enum import Enum

from nicegui import binding


class ServerState(str, Enum):
    CHECKING = "checking"  # status unknown, a query is in flight or about to run
    ONLINE = "online"
    OFFLINE = "offline"
    STARTING = "starting"  # start request sent, awaiting its HTTP result
    WAITING_FOR_ONLINE = "waiting_for_online"


# Per-session snapshot, mutated in place by its LifecycleMachine
@binding.bindable_dataclass
class LifecycleSnapshot:
    # Only trusted while ONLINE; left stale (not cleared) after leaving it
    num_players: int = 0
    server_version: str | None = None
    server_hostname: str | None = None
    server_ipv4_addr: str | None = None
    # Monotonic timestamp, set iff state is WAITING_FOR_ONLINE
    wait_started_at: float | None = None

