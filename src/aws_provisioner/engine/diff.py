"""Comparison of configured values against stored attributes."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from aws_provisioner.resources.base import Resource
    from aws_provisioner.resources.markers import CompareStrategy

# Fields that shape how the engine acts, not what the resource is.
UNPLANNED_FIELDS = frozenset({"depends_on", "timeouts"})


def values_differ(desired: Any, prior: Any, *, strategy: CompareStrategy | None = None) -> bool:
    """Whether *desired* (config) differs from *prior* (state).

    - ``"set"``: two lists compare as sets; anything else strictly.
    - ``"exact"``: strict equality, so extra keys in a stored dict count.
    - ``None``/``"partial"``: dicts compare only the keys present in
      *desired*, recursively. AWS fills in defaults the config never named
      and those must not show up as drift.
    """
    match strategy:
        case "set" if isinstance(desired, list) and isinstance(prior, list):
            return set(desired) != set(prior)
        case "set" | "exact":
            return desired != prior
    if isinstance(desired, dict) and isinstance(prior, dict):
        return any(values_differ(v, prior.get(k)) for k, v in desired.items())
    return desired != prior


def diff_attributes(
    planned: Mapping[str, Any],
    prior: Mapping[str, Any],
    strategies: Mapping[str, CompareStrategy],
) -> dict[str, dict[str, Any]]:
    """``{key: {"from": stored, "to": configured}}`` for every differing key."""
    return {
        key: {"from": prior.get(key), "to": value}
        for key, value in planned.items()
        if values_differ(value, prior.get(key), strategy=strategies.get(key))
    }


def planned_attributes(resource: Resource) -> dict[str, Any]:
    """The resource's attributes as they would be stored, minus engine-only fields."""
    return resource.model_dump(exclude_none=True, exclude={"address", *UNPLANNED_FIELDS})


def config_digest(resources: Sequence[Resource]) -> str:
    """Stable hash of the configuration a plan was computed from."""
    entries = [
        {
            "address": r.address,
            "resource_type": r.resource_type,
            "planned": planned_attributes(r),
        }
        for r in sorted(resources, key=lambda r: r.address)
    ]
    payload = json.dumps(entries, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
