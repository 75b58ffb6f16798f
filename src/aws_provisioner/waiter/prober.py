"""Single point-in-time status reads."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from aws_provisioner.waiter.classify import is_not_found
from aws_provisioner.waiter.types import NOT_FOUND, Observed, ProbeFailed, ProbeResult, Status

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class StatusProber(Protocol):
    def __call__(self, identity: str) -> ProbeResult:
        """Read the current status of *identity* exactly once."""


def status_prober(
    read: Callable[[str], Any],
    status_of: Callable[[Any], str | None],
    *,
    not_found: Callable[[BaseException], bool] = is_not_found,
) -> StatusProber:
    """Build a prober from a remote read and a status extractor.

    ``read`` performs the API call for an identity and returns the response
    object. A ``None`` response, or an exception for which ``not_found``
    returns True, is reported as :data:`NOT_FOUND`. Every other exception is
    wrapped in :class:`ProbeFailed`; the prober never retries.
    """

    def probe(identity: str) -> ProbeResult:
        try:
            obj = read(identity)
        except Exception as exc:
            if not_found(exc):
                logger.debug("Probe %s: not found", identity)
                return NOT_FOUND
            logger.debug("Probe %s failed: %s", identity, exc)
            return ProbeFailed(exc)

        if obj is None:
            logger.debug("Probe %s: empty response", identity)
            return NOT_FOUND

        try:
            status = status_of(obj)
        except Exception as exc:
            return ProbeFailed(exc)
        if status is None:
            return ProbeFailed(ValueError(f"Response for {identity} carries no status"))
        logger.debug("Probe %s: status=%s", identity, status)
        return Observed(obj=obj, status=Status(status))

    return probe
