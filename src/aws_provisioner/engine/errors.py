"""Exceptions raised while planning or applying."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aws_provisioner.engine.types import ResourceChange


class EngineError(Exception):
    """Root of every error the engine raises on purpose."""


class UnknownResourceTypeError(EngineError):
    def __init__(self, resource_type: str) -> None:
        self.resource_type = resource_type
        super().__init__(f"Unknown resource type: {resource_type}")


class DuplicateAddressError(EngineError):
    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Duplicate resource address: {address}")


class DependencyCycleError(EngineError):
    """The named addresses depend on each other, directly or transitively."""

    def __init__(self, addresses: list[str]) -> None:
        self.addresses = addresses
        detail = f": {', '.join(addresses)}" if addresses else ""
        super().__init__(f"Dependency cycle detected{detail}")


class StateStackMismatchError(EngineError):
    """The state file was written for another stack."""

    def __init__(self, expected: str, got: str) -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"State stack mismatch: expected {expected}, got {got}")


class StalePlanError(EngineError):
    """State moved on between ``plan`` and ``apply``."""


class StateLockError(EngineError):
    pass


class ValidationError(EngineError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        lines = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Validation failed:\n{lines}")


class _PartialApply(EngineError):
    """Carries an ``ApplyResult`` with the changes that completed first."""

    def __init__(self, message: str, applied: list[ResourceChange] | None) -> None:
        from aws_provisioner.engine.types import ApplyResult

        self.result = ApplyResult(applied=list(applied or []))
        super().__init__(message)


class ApplyError(_PartialApply):
    """An operation failed; the original error is chained as ``__cause__``."""

    def __init__(self, *, applied: list[ResourceChange], address: str, message: str) -> None:
        self.address = address
        super().__init__(f"Apply failed on {address}: {message}", applied)


class ApplyCanceled(_PartialApply):
    """The run was cancelled by Ctrl-C, a fired token or an expired deadline."""

    def __init__(
        self, message: str = "Apply canceled", *, applied: list[ResourceChange] | None = None
    ) -> None:
        super().__init__(message, applied)


class ResourceOperationError(EngineError):
    """A create/update/delete did not leave the resource in a confirmed state.

    ``cause`` is the first failure: the mutating call's error when it failed,
    otherwise the wait error. When both failed, the wait error is kept in
    ``wait_error`` so the final remote state can still be reported.
    """

    def __init__(
        self,
        *,
        action: str,
        resource_kind: str,
        identity: str | None,
        cause: BaseException,
        wait_error: BaseException | None = None,
    ) -> None:
        self.action = action
        self.resource_kind = resource_kind
        self.identity = identity
        self.cause = cause
        self.wait_error = wait_error
        target = f"{resource_kind} ({identity})" if identity else resource_kind
        message = f"{action} {target}: {cause}"
        if wait_error is not None:
            message += f"; waiting afterwards also failed: {wait_error}"
        super().__init__(message)
