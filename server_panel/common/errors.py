from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    MALFORMED_RESPONSE = "malformed_response"
    INDETERMINATE = "indeterminate"
    START_REJECTED = "start_rejected"
    NOT_WAITING = "not_waiting"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class LifecycleError:
    """A fatal condition reported by the lifecycle machine to its error sink."""

    kind: ErrorKind
    message: str  # human readable, shown to the user as is
    detail: str | None = None

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


ErrorSink = Callable[[LifecycleError], None]
