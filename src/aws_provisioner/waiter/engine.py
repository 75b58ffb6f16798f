"""Poll a resource status until it settles.

``wait_until`` drives a strictly sequential series of probes for one identity:

- a target status ends the wait successfully;
- a pending status, or a retryable read error, schedules another probe;
- any other status, a non-retryable read error, or an unexpected
  disappearance ends the wait with an error.

The wait is bounded by ``WaitSpec.timeout`` and can be aborted early through a
:class:`~aws_provisioner.waiter.cancel.CancelToken`. The two are reported
differently (``WaitTimeoutError`` vs ``WaitCanceledError``).
"""

from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING, Any

from aws_provisioner.waiter.cancel import CancelToken
from aws_provisioner.waiter.classify import is_retryable
from aws_provisioner.waiter.errors import (
    PermanentProbeError,
    TransientRetriesExhaustedError,
    UnexpectedDisappearanceError,
    UnexpectedStateError,
    WaitCanceledError,
    WaitTimeoutError,
)
from aws_provisioner.waiter.types import NotFound, Observed, ProbeFailed

if TYPE_CHECKING:
    from collections.abc import Callable

    from aws_provisioner.waiter.prober import StatusProber
    from aws_provisioner.waiter.types import WaitSpec

logger = logging.getLogger(__name__)


def _next_delay(spec: WaitSpec, rng: random.Random) -> float:
    if not spec.jitter:
        return spec.poll_interval
    spread = spec.poll_interval * spec.jitter
    return spec.poll_interval + rng.uniform(-spread, spread)


def wait_until(
    prober: StatusProber,
    identity: str,
    spec: WaitSpec,
    *,
    cancel: CancelToken | None = None,
    clock: Callable[[], float] = time.monotonic,
    rng: random.Random | None = None,
) -> Any:
    """Probe *identity* until its status satisfies *spec*.

    Returns the final observed object. Disappearance waits (empty
    ``spec.target``) return ``None``: there is no object left to observe.

    Raises:
        UnexpectedStateError: a status outside both pending and target sets.
        UnexpectedDisappearanceError: not found while a target was expected.
        PermanentProbeError: a non-retryable read error (chained as cause).
        TransientRetriesExhaustedError: ``spec.max_transient_failures`` hit.
        WaitTimeoutError: ``spec.timeout`` elapsed.
        WaitCanceledError: *cancel* fired.
    """
    cancel = cancel or CancelToken()
    rng = rng or random.Random()  # noqa: S311
    deadline = clock() + spec.timeout

    last_obj: Any = None
    last_status: str | None = None
    last_error: BaseException | None = None
    not_found_count = 0
    transient_failures = 0
    probes = 0

    logger.debug(
        "Waiting for %s: pending=%s target=%s timeout=%gs",
        identity,
        sorted(spec.pending),
        sorted(spec.target),
        spec.timeout,
    )

    while True:
        if cancel.cancelled:
            raise WaitCanceledError(
                identity=identity,
                reason=cancel.reason,
                last_object=last_obj,
                last_status=last_status,
            )

        probes += 1
        result = prober(identity)

        match result:
            case NotFound():
                if spec.expects_disappearance:
                    logger.debug("%s is gone after %d probe(s)", identity, probes)
                    return None
                not_found_count += 1
                if not_found_count >= spec.not_found_checks:
                    raise UnexpectedDisappearanceError(
                        identity=identity,
                        checks=not_found_count,
                        last_object=last_obj,
                        last_status=last_status,
                    )
            case ProbeFailed(error=err):
                if not is_retryable(err):
                    raise PermanentProbeError(
                        f"reading status of {identity}: {err}",
                        identity=identity,
                        last_object=last_obj,
                        last_status=last_status,
                    ) from err
                transient_failures += 1
                last_error = err
                logger.warning(
                    "Transient error reading %s (failure %d): %s",
                    identity,
                    transient_failures,
                    err,
                )
                if (
                    spec.max_transient_failures is not None
                    and transient_failures > spec.max_transient_failures
                ):
                    raise TransientRetriesExhaustedError(
                        identity=identity,
                        failures=transient_failures,
                        last_object=last_obj,
                        last_status=last_status,
                    ) from err
            case Observed(obj=obj, status=status):
                last_obj, last_status = obj, status
                not_found_count = 0
                if status in spec.target:
                    logger.debug(
                        "%s reached '%s' after %d probe(s)", identity, status, probes
                    )
                    return obj
                if status not in spec.pending:
                    raise UnexpectedStateError(
                        identity=identity,
                        status=status,
                        pending=spec.pending,
                        target=spec.target,
                        last_object=obj,
                    )

        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeoutError(
                identity=identity,
                timeout=spec.timeout,
                last_object=last_obj,
                last_status=last_status,
                last_error=last_error,
            )
        if cancel.sleep(min(_next_delay(spec, rng), remaining)):
            raise WaitCanceledError(
                identity=identity,
                reason=cancel.reason,
                last_object=last_obj,
                last_status=last_status,
            )
        if clock() >= deadline:
            raise WaitTimeoutError(
                identity=identity,
                timeout=spec.timeout,
                last_object=last_obj,
                last_status=last_status,
                last_error=last_error,
            )
