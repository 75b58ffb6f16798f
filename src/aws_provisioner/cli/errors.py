"""Turn the errors a command can hit into a few readable lines on stderr."""

from __future__ import annotations

import typer

from aws_provisioner.config.loader import ConfigError
from aws_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    ResourceOperationError,
    StalePlanError,
    StateStackMismatchError,
    ValidationError,
)
from aws_provisioner.waiter import WaitCanceledError, WaitError

_PARTIAL_VERBS = (("create", "added"), ("update", "changed"), ("delete", "destroyed"))


def _describe(exc: Exception) -> list[str]:
    match exc:
        case ConfigError():
            return [f"Configuration error: {exc}"]
        case ValidationError():
            return ["Validation failed:", *(f"  - {e}" for e in exc.errors)]
        case StalePlanError():
            return [f"Plan is stale: {exc}"]
        case StateStackMismatchError():
            return [f"State mismatch: {exc}"]
        case ApplyError():
            lines = [f"Apply failed: {exc}"]
            cause = exc.__cause__
            if isinstance(cause, ResourceOperationError):
                lines += [
                    f"  Action:   {cause.action}",
                    f"  Resource: {cause.resource_kind}",
                    f"  Identity: {cause.identity or '(not assigned)'}",
                    f"  Cause:    {cause.cause}",
                ]
            return lines + _partial_result(exc)
        case ApplyCanceled():
            return ["Apply canceled.", *_partial_result(exc)]
        case WaitCanceledError():
            return ["Apply canceled."]
        case ResourceOperationError():
            return [f"Operation failed: {exc}"]
        case WaitError():
            return [f"Wait failed: {exc}"]
    return [f"Error: {exc}"]


def _partial_result(exc: ApplyError | ApplyCanceled) -> list[str]:
    counts = exc.result.summary()
    done = [f"{counts[action]} {verb}" for action, verb in _PARTIAL_VERBS if counts[action]]
    return [f"  Partial result: {', '.join(done)}."] if done else []


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Report *exc* on stderr without a traceback; always returns exit code 1."""
    fg = typer.colors.RED if color else None
    for line in _describe(exc):
        typer.echo(typer.style(line, fg=fg), err=True)
    return 1
