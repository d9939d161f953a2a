"""
CallOutcome - Explicit result of a single downstream call.

A call either succeeds with a decoded payload or fails with a classified
reason. Failures are values, not exceptions, so every call site has to
decide what a failed source means for its result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    """Classification of a failed downstream call."""

    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    SERVER_ERROR = "server_error"  # 5xx
    RATE_LIMITED = "rate_limited"  # 429
    CLIENT_ERROR = "client_error"  # other 4xx
    DECODE_ERROR = "decode_error"


TRANSIENT_KINDS = frozenset(
    {
        FailureKind.TIMEOUT,
        FailureKind.CONNECTION_ERROR,
        FailureKind.SERVER_ERROR,
        FailureKind.RATE_LIMITED,
    }
)


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful call carrying the decoded payload."""

    payload: T


@dataclass(frozen=True)
class Failure:
    """Failed call with its classification."""

    kind: FailureKind
    detail: str = ""
    status_code: int | None = None

    @property
    def is_transient(self) -> bool:
        """Whether a retry may succeed."""
        return self.kind in TRANSIENT_KINDS

    @property
    def reason(self) -> str:
        """Short human-readable reason, used in log lines."""
        if self.status_code is not None:
            return f"{self.kind.value} (HTTP {self.status_code})"
        if self.detail:
            return f"{self.kind.value}: {self.detail}"
        return self.kind.value


CallOutcome = Union[Success[Any], Failure]
