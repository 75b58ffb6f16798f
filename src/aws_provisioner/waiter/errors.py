"""Wait error types."""

from __future__ import annotations

from typing import Any


class WaitError(Exception):
    """Base exception for a wait that did not reach its target.

    Every subclass carries the last object and status observed before the
    wait ended, so callers can report what the remote side looked like.
    """

    def __init__(
        self,
        message: str,
        *,
        identity: str,
        last_object: Any = None,
        last_status: str | None = None,
    ) -> None:
        super().__init__(message)
        self.identity = identity
        self.last_object = last_object
        self.last_status = last_status


class UnexpectedStateError(WaitError):
    """Observed status is neither pending nor target."""

    def __init__(
        self,
        *,
        identity: str,
        status: str,
        pending: frozenset[str],
        target: frozenset[str],
        last_object: Any = None,
    ) -> None:
        expected = sorted(pending | target)
        super().__init__(
            f"unexpected state '{status}' for {identity}, wanted one of {expected}",
            identity=identity,
            last_object=last_object,
            last_status=status,
        )
        self.pending = pending
        self.target = target


class UnexpectedDisappearanceError(WaitError):
    """The resource vanished while a target status was expected."""

    def __init__(
        self,
        *,
        identity: str,
        checks: int,
        last_object: Any = None,
        last_status: str | None = None,
    ) -> None:
        super().__init__(
            f"{identity} not found after {checks} check(s) while waiting for a target state",
            identity=identity,
            last_object=last_object,
            last_status=last_status,
        )
        self.checks = checks


class PermanentProbeError(WaitError):
    """A status read failed with a non-retryable error.

    The original exception is chained via ``__cause__``.
    """


class TransientRetriesExhaustedError(WaitError):
    """Retryable read failures exceeded ``WaitSpec.max_transient_failures``."""

    def __init__(
        self,
        *,
        identity: str,
        failures: int,
        last_object: Any = None,
        last_status: str | None = None,
    ) -> None:
        super().__init__(
            f"giving up on {identity} after {failures} failed status read(s)",
            identity=identity,
            last_object=last_object,
            last_status=last_status,
        )
        self.failures = failures


class WaitTimeoutError(WaitError):
    """The wait deadline elapsed before a target status was observed."""

    def __init__(
        self,
        *,
        identity: str,
        timeout: float,
        last_object: Any = None,
        last_status: str | None = None,
        last_error: BaseException | None = None,
    ) -> None:
        msg = f"timeout after {timeout:g}s waiting for {identity}"
        if last_status is not None:
            msg += f" (last state: '{last_status}')"
        elif last_error is not None:
            msg += f" (last error: {last_error})"
        super().__init__(
            msg,
            identity=identity,
            last_object=last_object,
            last_status=last_status,
        )
        self.timeout = timeout
        self.last_error = last_error


class WaitCanceledError(WaitError):
    """An external cancellation signal ended the wait."""

    def __init__(
        self,
        *,
        identity: str,
        reason: str = "canceled",
        last_object: Any = None,
        last_status: str | None = None,
    ) -> None:
        super().__init__(
            f"wait for {identity} {reason}",
            identity=identity,
            last_object=last_object,
            last_status=last_status,
        )
        self.reason = reason
