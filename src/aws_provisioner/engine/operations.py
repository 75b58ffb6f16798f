"""Nodes of the apply graph.

Every planned create/update/delete becomes one operation. Operations name the
keys of the operations they must follow; the engine orders them with a
``DependencyGraph`` and runs them one at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from aws_provisioner.core.state import ResourceInstance, State, compute_attributes_hash

if TYPE_CHECKING:
    from aws_provisioner.engine.handlers import EngineContext
    from aws_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
    from aws_provisioner.engine.types import ResourceChange
    from aws_provisioner.resources.base import Resource

ACTIONS = ("create", "update", "delete")


class Operation(Protocol):
    key: str
    deps: list[str]
    change: ResourceChange | None

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> bool:
        """Execute the operation; True means state changed and must be saved."""


@dataclass
class BarrierOperation:
    """Ordering-only node: everything depending on it waits for all of ``deps``."""

    key: str
    deps: list[str] = field(default_factory=list)
    change: ResourceChange | None = None

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> bool:
        _ = ctx, state, registry
        return False


@dataclass
class _ResourceOperation:
    key: str
    change: ResourceChange
    deps: list[str] = field(default_factory=list)

    verb: ClassVar[str]

    def _registration(self, registry: ResourceTypeRegistry) -> ResourceTypeRegistration:
        return registry.get(self.change.resource_type)

    def _desired(self, registration: ResourceTypeRegistration) -> Resource:
        if self.change.desired is None:
            raise ValueError(f"Missing desired config for {self.verb}: {self.change.address}")
        desired = registration.model.model_validate(self.change.desired)
        if desired.address != self.change.address:
            raise ValueError(
                f"Desired address mismatch for {self.verb}: "
                f"{self.change.address} != {desired.address}"
            )
        return desired

    @staticmethod
    def _record(inst: ResourceInstance, desired: Resource, attrs: dict[str, Any]) -> None:
        inst.attributes = attrs
        inst.attributes_hash = compute_attributes_hash(attrs)
        inst.dependencies = list(desired.depends_on)
        # Kept in state so a later destroy honours the configured delete timeout.
        inst.timeouts = {action: desired.timeout_for(action) for action in ACTIONS}
        inst.updated_at = datetime.now(UTC)


class CreateOperation(_ResourceOperation):
    verb = "create"

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> bool:
        registration = self._registration(registry)
        desired = self._desired(registration)
        attrs = registration.handler.create(ctx, desired)

        inst = ResourceInstance(
            address=self.change.address,
            resource_type=self.change.resource_type,
            name=desired.name,
        )
        self._record(inst, desired, attrs)
        inst.created_at = inst.updated_at
        state.resources[inst.address] = inst
        return True


class UpdateOperation(_ResourceOperation):
    verb = "update"

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> bool:
        registration = self._registration(registry)
        desired = self._desired(registration)
        inst = state.resources[self.change.address]
        attrs = registration.handler.update(ctx, desired, inst)
        self._record(inst, desired, attrs)
        return True


class DeleteOperation(_ResourceOperation):
    verb = "delete"

    def run(self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry) -> bool:
        inst = state.resources[self.change.address]
        self._registration(registry).handler.delete(ctx, inst)
        del state.resources[self.change.address]
        return True
