"""Typed results returned by a single upstream fetch."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    BLOCKED = "blocked"
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    data: T
    source: str = ""


@dataclass(frozen=True, slots=True)
class Empty:
    reason: str = "empty"
    source: str = ""


@dataclass(frozen=True, slots=True)
class Failure:
    kind: FailureKind
    detail: str = ""
    status: Optional[int] = None
    source: str = ""


FetchOutcome = Union[Success[Any], Empty, Failure]


def unwrap(outcome: FetchOutcome, default: Any = None) -> Any:
    """Return the payload of a :class:`Success` or ``default`` otherwise."""

    if isinstance(outcome, Success):
        return outcome.data
    return default


__all__ = ["FailureKind", "Success", "Empty", "Failure", "FetchOutcome", "unwrap"]
