"""Plan, change and apply-result models."""

from __future__ import annotations

import json
from collections import Counter
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "no-op"


def _count_actions(changes: Iterable[ResourceChange]) -> dict[str, int]:
    counted = Counter(c.action.value for c in changes)
    return {a.value: counted[a.value] for a in Action}


class PlanMetadata(BaseModel):
    """What a plan was computed against; ``apply`` refuses a plan whose state moved on."""

    stack: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    destroy: bool
    refresh: bool
    state_lineage: str
    state_serial: int
    state_digest: str
    config_digest: str
    engine_version: str


class ResourceChange(BaseModel):
    """One planned (or applied) action on one address.

    ``desired`` is the resource as configured, ``prior`` the attributes from
    state and ``planned`` what state should hold afterwards. ``diff`` maps
    changed keys to ``{"from": ..., "to": ...}``.
    """

    address: str
    resource_type: str
    action: Action
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    planned: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None


class Plan(BaseModel):
    metadata: PlanMetadata
    changes: list[ResourceChange]

    def summary(self) -> dict[str, int]:
        return _count_actions(self.changes)

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True)
        path.write_text(payload + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> Plan:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


class ApplyResult(BaseModel):
    """Changes that completed, in the order they were applied."""

    applied: list[ResourceChange] = Field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return _count_actions(self.applied)
