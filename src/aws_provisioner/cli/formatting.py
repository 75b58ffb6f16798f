"""Rendering plans, drift and apply results as Terraform-style text."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import typer

from aws_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from aws_provisioner.engine.types import Plan, ResourceChange


@dataclass(frozen=True)
class ActionLook:
    color: str
    symbol: str
    describes: str
    running: str = ""
    finished: str = ""


LOOKS: dict[Action, ActionLook] = {
    Action.CREATE: ActionLook("green", "+", "will be created", "Creating", "Creation complete"),
    Action.UPDATE: ActionLook(
        "yellow", "~", "will be updated in-place", "Updating", "Update complete"
    ),
    Action.DELETE: ActionLook("red", "-", "will be destroyed", "Destroying", "Destroy complete"),
    Action.NOOP: ActionLook("bright_black", " ", "is up-to-date"),
}

_COUNTED = (Action.CREATE, Action.UPDATE, Action.DELETE)
_COUNT_COLORS = ("green", "yellow", "red")
NO_CHANGES = "No changes. Resources are up-to-date."


def styler(color: bool) -> Callable[..., str]:
    """``typer.style``, or a function returning the text untouched."""
    if color:
        return typer.style

    def plain(text: str, **_: Any) -> str:
        return text

    return plain


def has_actionable_changes(plan: Plan) -> bool:
    return any(c.action is not Action.NOOP for c in plan.changes)


def _show(value: Any) -> str:
    match value:
        case None:
            return "null"
        case str():
            return f'"{value}"'
        case dict() | list():
            return json.dumps(value, sort_keys=True)
    return str(value)


def _body(change: ResourceChange) -> dict[str, str]:
    if change.action is Action.CREATE:
        return {key: _show(value) for key, value in (change.planned or {}).items()}
    if change.action is Action.UPDATE:
        return {
            key: f"{_show(d['from'])} -> {_show(d['to'])}"
            for key, d in (change.diff or {}).items()
        }
    if change.action is Action.DELETE and "id" in (change.prior or {}):
        return {"id": _show(change.prior["id"])}  # type: ignore[index]
    return {}


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    look = LOOKS[change.action]
    paint = styler(color)
    _, _, name = change.address.rpartition(".")
    body = _body(change)
    width = max(map(len, body), default=0)

    lines = [
        paint(f"  # {change.address} {look.describes}", fg=look.color, bold=True),
        paint(f'  {look.symbol} resource "{change.resource_type}" "{name}" {{', fg=look.color),
    ]
    lines += [
        paint(f"      {look.symbol} {key.ljust(width)} = {value}", fg=look.color)
        for key, value in body.items()
    ]
    lines.append(paint("    }", fg=look.color))
    return "\n".join(lines)


def format_changes(changes: Iterable[ResourceChange], *, color: bool = True) -> str:
    """One block per actionable change, separated by blank lines."""
    blocks = [format_change(c, color=color) for c in changes if c.action is not Action.NOOP]
    return "\n\n".join(blocks) if blocks else NO_CHANGES


def format_plan(plan: Plan, *, color: bool = True) -> str:
    return format_changes(plan.changes, color=color)


def changes_summary(changes: Iterable[ResourceChange]) -> dict[str, int]:
    summary = {action.value: 0 for action in _COUNTED}
    for change in changes:
        if change.action is not Action.NOOP:
            summary[change.action.value] += 1
    return summary


def _counts(summary: dict[str, int], verbs: tuple[str, str, str], color: bool) -> str:
    paint = styler(color)
    parts = []
    for action, verb, fg in zip(_COUNTED, verbs, _COUNT_COLORS, strict=True):
        n = summary.get(action.value, 0)
        text = f"{n} {verb}"
        parts.append(paint(text, fg=fg) if n else text)
    return ", ".join(parts)


def format_plan_summary(
    summary: dict[str, int], *, color: bool = True, header: str = "Plan"
) -> str:
    """``Plan: 2 to add, 1 to change, 0 to destroy.``"""
    return f"{header}: {_counts(summary, ('to add', 'to change', 'to destroy'), color)}."


def format_apply_summary(summary: dict[str, int], *, color: bool = True) -> str:
    """``Apply complete! Resources: 2 added, 0 changed, 0 destroyed.``"""
    done = styler(color)("Apply complete!", fg="green", bold=True)
    return f"{done} Resources: {_counts(summary, ('added', 'changed', 'destroyed'), color)}."
