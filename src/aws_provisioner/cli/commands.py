"""The commands: plan, apply, destroy, refresh, drift and validate."""

from __future__ import annotations

import contextlib
import os
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from aws_provisioner import config as api
from aws_provisioner.cli import app
from aws_provisioner.cli.errors import handle_error
from aws_provisioner.cli.formatting import (
    LOOKS,
    NO_CHANGES,
    changes_summary,
    format_apply_summary,
    format_changes,
    format_plan,
    format_plan_summary,
    has_actionable_changes,
    styler,
)
from aws_provisioner.engine.types import Action, Plan
from aws_provisioner.resources.timeouts import parse_duration
from aws_provisioner.waiter import CancelToken

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aws_provisioner.config.schema import Config
    from aws_provisioner.engine.types import ApplyResult, ResourceChange

DEFAULT_CONFIG = Path("aws-provisioner.yaml")

ConfigPath = Annotated[Path, typer.Option("--config", "-c", help="Path to the configuration file.")]
NoColor = Annotated[bool, typer.Option("--no-color", help="Disable colored output.")]
AutoApprove = Annotated[bool, typer.Option("--auto-approve", help="Skip interactive approval.")]
NoRefresh = Annotated[bool, typer.Option("--no-refresh", help="Skip refreshing state from AWS.")]
Timeout = Annotated[
    str | None,
    typer.Option(
        "--timeout",
        help="Overall deadline for the apply (e.g. 30m, 1h). Waits in progress are canceled.",
    ),
]


def _use_color(no_color: bool) -> bool:
    return not no_color and not os.environ.get("NO_COLOR")


def _timeout_seconds(raw: str | None) -> float | None:
    if raw is None:
        return None
    with contextlib.suppress(ValueError):
        parsed = parse_duration(raw)
        if isinstance(parsed, timedelta) and parsed.total_seconds() > 0:
            return parsed.total_seconds()
    raise typer.BadParameter(f"invalid duration {raw!r}", param_hint="--timeout")


@contextlib.contextmanager
def _reported(color: bool) -> Iterator[None]:
    """Turn any failure inside the block into a message and exit code 1."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc


def _approve(question: str, declined: str) -> None:
    if not typer.confirm(question):
        typer.echo(declined, err=True)
        raise typer.Exit(1)


def _show_plan(plan_obj: Plan, color: bool) -> None:
    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))


def _apply_with_progress(
    plan_obj: Plan, cfg: Config, *, color: bool, cancel: CancelToken
) -> ApplyResult:
    """Apply under a Rich progress bar, printing a line per finished resource."""
    todo = sum(1 for c in plan_obj.changes if c.action is not Action.NOOP)
    columns = (
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
    )
    with Progress(*columns, console=Console(no_color=not color)) as bar:
        task = bar.add_task("Applying", total=todo)

        def report(change: ResourceChange, event: Literal["start", "done"]) -> None:
            look = LOOKS[change.action]
            if event == "start":
                bar.update(task, description=f"{change.address}: {look.running}...")
            else:
                bar.console.print(f"  {change.address}: {look.finished}")
                bar.advance(task)

        return api.apply(plan_obj, cfg, progress=report, cancel=cancel)


def _run_plan(
    plan_obj: Plan,
    cfg: Config,
    *,
    color: bool,
    auto_approve: bool,
    question: str,
    nothing_to_do: str,
    timeout: float | None,
) -> None:
    if not has_actionable_changes(plan_obj):
        typer.echo(nothing_to_do)
        raise typer.Exit(0)

    _show_plan(plan_obj, color)
    typer.echo()
    if not auto_approve:
        _approve(question, "Apply canceled.")

    # The deadline starts counting once the operator said yes.
    cancel = CancelToken(timeout=timeout)
    with _reported(color):
        result = _apply_with_progress(plan_obj, cfg, color=color, cancel=cancel)
    typer.echo()
    typer.echo(format_apply_summary(result.summary(), color=color))


@app.command()
def plan(
    config: ConfigPath = DEFAULT_CONFIG,
    out: Annotated[Path | None, typer.Option("--out", "-o", help="Save plan to file.")] = None,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show the changes the configuration requires (exit code 2 if there are any)."""
    color = _use_color(no_color)
    with _reported(color):
        plan_obj = api.plan(api.load(config), refresh=not no_refresh)

    _show_plan(plan_obj, color)
    if out is not None:
        plan_obj.save(out)
        typer.echo(f"\nPlan saved to {out}")
    if has_actionable_changes(plan_obj):
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[Path | None, typer.Argument(help="Saved plan file to apply.")] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
    timeout: Timeout = None,
) -> None:
    """Apply the changes the configuration requires."""
    color = _use_color(no_color)
    deadline = _timeout_seconds(timeout)
    with _reported(color):
        cfg = api.load(config)
        if plan_file is not None:
            plan_obj = Plan.load(plan_file)
        else:
            plan_obj = api.plan(cfg, refresh=not no_refresh)

    _run_plan(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you want to apply these changes?",
        nothing_to_do=NO_CHANGES,
        timeout=deadline,
    )


@app.command()
def destroy(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    timeout: Timeout = None,
) -> None:
    """Destroy every resource tracked in the state file."""
    color = _use_color(no_color)
    deadline = _timeout_seconds(timeout)
    with _reported(color):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=True)

    _run_plan(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Do you really want to destroy all resources?",
        nothing_to_do="No resources to destroy.",
        timeout=deadline,
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Re-read tracked resources from AWS and update the state file."""
    color = _use_color(no_color)
    with _reported(color):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)

    if not changes:
        typer.echo("No changes. State is up-to-date with AWS.")
        raise typer.Exit(0)

    typer.echo(format_changes(changes, color=color))
    typer.echo()
    typer.echo(format_plan_summary(changes_summary(changes), color=color, header="Refresh"))
    typer.echo()
    if not auto_approve:
        _approve("Do you want to update the state file?", "Refresh canceled.")

    api.save_state(cfg, state)
    tracked = len(state.resources)
    typer.echo(f"State refreshed. {tracked} resource{'' if tracked == 1 else 's'} tracked.")


@app.command()
def drift(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Show where AWS no longer matches the state file."""
    color = _use_color(no_color)
    with _reported(color):
        changes = api.drift(api.load(config))

    if not changes:
        typer.echo("No drift detected. State is up-to-date with AWS.")
        raise typer.Exit(0)
    typer.echo("Drift detected:\n")
    typer.echo(format_changes(changes, color=color))


@app.command()
def validate(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Check the configuration without calling AWS."""
    color = _use_color(no_color)
    with _reported(color):
        api.plan(api.load(config), refresh=False)
    typer.echo(styler(color)("Configuration is valid.", fg="green"))
