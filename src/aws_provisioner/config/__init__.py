"""Load a YAML config and drive the engine from it.

The functions here are what the CLI calls; each builds a fresh
``ProvisionEngine`` from the config so library users get the same
behaviour as the command line.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aws_provisioner.config.loader import ConfigError, load_config
from aws_provisioner.config.registry import default_registry
from aws_provisioner.config.schema import Config, ProviderConfig
from aws_provisioner.core.provider import AWSProvider
from aws_provisioner.core.state import State
from aws_provisioner.engine.engine import ProgressCallback, ProvisionEngine
from aws_provisioner.engine.lock import StateLock
from aws_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from pathlib import Path

    from aws_provisioner.engine.types import ApplyResult, Plan
    from aws_provisioner.waiter import CancelToken

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "load",
    "load_config",
    "plan",
    "plan_and_apply",
    "refresh",
    "save_state",
]


def load(path: Path | str) -> Config:
    return load_config(path)


def _engine_from_config(config: Config) -> ProvisionEngine:
    settings = config.provider
    return ProvisionEngine(
        provider=AWSProvider(
            region=settings.region,
            profile=settings.profile,
            endpoint_url=settings.endpoint_url,
            max_attempts=settings.max_attempts,
        ),
        stack=settings.stack,
        state_path=config.state_path,
        registry=default_registry(),
        poll_interval=settings.poll_seconds,
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    return _engine_from_config(config).plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan,
    config: Config,
    *,
    progress: ProgressCallback | None = None,
    cancel: CancelToken | None = None,
) -> ApplyResult:
    """Apply *plan_obj*; *cancel* bounds or aborts the waits it starts."""
    return _engine_from_config(config).apply(plan_obj, progress=progress, cancel=cancel)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    return apply(plan(config, destroy=destroy, refresh=refresh), config)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Re-read every tracked resource without writing the state file.

    Returns the drift found and the refreshed state; hand the latter to
    :func:`save_state` to keep it.
    """
    before, after = _engine_from_config(config).refresh()
    return _build_drift_changes(before, after), after


def save_state(config: Config, state: State) -> None:
    with StateLock(config.state_path):
        state.serial += 1
        state.save(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    return refresh(config)[0]


def _attribute_diff(old: dict, new: dict) -> dict[str, dict]:
    return {
        key: {"from": old.get(key), "to": new.get(key)}
        for key in sorted(old.keys() | new.keys())
        if old.get(key) != new.get(key)
    }


def _build_drift_changes(before: State, after: State) -> list[ResourceChange]:
    """Changed resources as updates, vanished ones as deletes (sorted by address)."""
    drifted = [
        ResourceChange(
            address=address,
            resource_type=inst.resource_type,
            action=Action.UPDATE,
            prior=dict(before.resources[address].attributes),
            planned=dict(inst.attributes),
            diff=_attribute_diff(before.resources[address].attributes, inst.attributes),
        )
        for address, inst in after.resources.items()
        if address in before.resources
        and before.resources[address].attributes != inst.attributes
    ]
    vanished = [
        ResourceChange(
            address=address,
            resource_type=before.resources[address].resource_type,
            action=Action.DELETE,
            prior=dict(before.resources[address].attributes),
        )
        for address in sorted(before.resources.keys() - after.resources.keys())
    ]
    return drifted + vanished
