"""What the engine hands to resource handlers, and what it expects back."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from aws_provisioner.resources.base import Resource
from aws_provisioner.waiter.cancel import CancelToken

if TYPE_CHECKING:
    from collections.abc import Mapping

    from aws_provisioner.core import AWSProvider
    from aws_provisioner.core.state import ResourceInstance, State

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    """Per-run context shared by every handler call.

    Every wait started during the run polls at ``poll_interval`` and stops
    as soon as ``cancel`` fires.
    """

    provider: AWSProvider
    stack: str
    cancel: CancelToken = field(default_factory=CancelToken)
    poll_interval: float = 5.0


class PlanContext:
    """Addresses known to a plan: everything configured plus everything in state.

    Lets a handler check that a resource it references by name will exist
    once the plan is applied, whether it is being created in this run or
    was created by an earlier one.
    """

    def __init__(self, desired: Mapping[str, Resource], state: State) -> None:
        known: dict[str, str] = {a: i.resource_type for a, i in state.resources.items()}
        known.update((a, r.resource_type) for a, r in desired.items())
        names = {a: i.name for a, i in state.resources.items()}
        names.update((a, r.name) for a, r in desired.items())
        self._addresses = frozenset(known)
        self._typed_names = frozenset((known[a], names[a]) for a in known)
        self._names = frozenset(names.values())

    def address_exists(self, address: str) -> bool:
        return address in self._addresses

    def has_resource(self, name: str, *, resource_type: str | None = None) -> bool:
        """Whether a resource called *name* (of *resource_type*, if given) is known."""
        if resource_type is None:
            return name in self._names
        return (resource_type, name) in self._typed_names


class ResourceHandler(Generic[R]):
    """Maps one resource type onto AWS calls.

    ``create``/``update``/``read`` return the attributes to store in state;
    ``read`` returns None once the resource is gone. Both validation hooks
    return error messages and accept everything by default.
    """

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        _ = ctx, desired
        return []

    def validate_plan(self, ctx: EngineContext, desired: R, plan_ctx: PlanContext) -> list[str]:
        """Checks that need the other resources of the plan."""
        _ = ctx, desired, plan_ctx
        return []

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        raise NotImplementedError

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        raise NotImplementedError

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        raise NotImplementedError
