"""Wait specification and probe result types."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, NewType, TypeAlias

Status = NewType("Status", str)


@dataclass(frozen=True, slots=True)
class Observed:
    """The remote object exists and reported ``status``."""

    obj: Any
    status: Status


@dataclass(frozen=True, slots=True)
class NotFound:
    """The remote system reports the identity does not exist."""


@dataclass(frozen=True, slots=True)
class ProbeFailed:
    """The read failed for any reason other than not-found."""

    error: BaseException


NOT_FOUND = NotFound()

ProbeResult: TypeAlias = Observed | NotFound | ProbeFailed


def _freeze(statuses: Iterable[str]) -> frozenset[str]:
    if isinstance(statuses, str):
        return frozenset({statuses})
    return frozenset(statuses)


@dataclass(frozen=True)
class WaitSpec:
    """How long to poll and which statuses end the wait.

    An empty ``target`` means the entity must disappear: a not-found probe is
    then the success condition.

    ``not_found_checks`` is how many consecutive not-found probes are tolerated
    while ``target`` is non-empty before giving up (read-after-write lag).
    ``max_transient_failures`` caps retried read errors; ``None`` relies on
    ``timeout`` alone.
    """

    pending: frozenset[str]
    target: frozenset[str]
    timeout: float
    poll_interval: float = 5.0
    jitter: float = 0.0
    not_found_checks: int = 1
    max_transient_failures: int | None = None
    description: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pending", _freeze(self.pending))
        object.__setattr__(self, "target", _freeze(self.target))

        overlap = self.pending & self.target
        if overlap:
            raise ValueError(f"Pending and target statuses overlap: {sorted(overlap)}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if not 0 <= self.jitter < 1:
            raise ValueError(f"jitter must be in [0, 1), got {self.jitter}")
        if self.not_found_checks < 1:
            raise ValueError("not_found_checks must be at least 1")
        if self.max_transient_failures is not None and self.max_transient_failures < 0:
            raise ValueError("max_transient_failures must be non-negative")

    @property
    def expects_disappearance(self) -> bool:
        return not self.target
