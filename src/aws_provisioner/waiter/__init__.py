"""Poll-until-state waiting for asynchronously provisioned resources."""

from aws_provisioner.waiter.cancel import CancelToken
from aws_provisioner.waiter.classify import error_code, is_not_found, is_retryable
from aws_provisioner.waiter.engine import wait_until
from aws_provisioner.waiter.errors import (
    PermanentProbeError,
    TransientRetriesExhaustedError,
    UnexpectedDisappearanceError,
    UnexpectedStateError,
    WaitCanceledError,
    WaitError,
    WaitTimeoutError,
)
from aws_provisioner.waiter.prober import StatusProber, status_prober
from aws_provisioner.waiter.types import (
    NOT_FOUND,
    NotFound,
    Observed,
    ProbeFailed,
    ProbeResult,
    Status,
    WaitSpec,
)

__all__ = [
    "NOT_FOUND",
    "CancelToken",
    "NotFound",
    "Observed",
    "PermanentProbeError",
    "ProbeFailed",
    "ProbeResult",
    "Status",
    "StatusProber",
    "TransientRetriesExhaustedError",
    "UnexpectedDisappearanceError",
    "UnexpectedStateError",
    "WaitCanceledError",
    "WaitError",
    "WaitSpec",
    "WaitTimeoutError",
    "error_code",
    "is_not_found",
    "is_retryable",
    "status_prober",
    "wait_until",
]
