"""Tagged results returned by every gateway call."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why a gateway call did not produce a payload."""

    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class GatewayFailure:
    """A single reported failure for one call.

    Callers are expected to show ``message`` and nothing more; ``kind`` and
    ``status_code`` are kept for logging.
    """

    kind: FailureKind
    message: str
    status_code: Optional[int] = None

    @classmethod
    def network(cls, method: str, path: str, exc: Exception) -> "GatewayFailure":
        return cls(FailureKind.NETWORK, f"{method} {path} failed: {exc.__class__.__name__}")

    @classmethod
    def http_status(cls, method: str, path: str, code: int) -> "GatewayFailure":
        return cls(FailureKind.HTTP_STATUS, f"{method} {path} failed with status {code}", code)

    @classmethod
    def malformed(cls, method: str, path: str, detail: str) -> "GatewayFailure":
        return cls(FailureKind.MALFORMED, f"{method} {path} returned an unexpected body: {detail}")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    failure: GatewayFailure

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.failure.message


Result = Union[Ok[Any], Err]
