"""Lookup from ``resource_type`` to its model and handler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aws_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aws_provisioner.engine.handlers import ResourceHandler
    from aws_provisioner.resources.base import Resource


@dataclass(frozen=True)
class ResourceTypeRegistration:
    resource_type: str
    model: type[Resource]
    handler: ResourceHandler[Any]


class ResourceTypeRegistry:
    """Each resource type is registered exactly once with one handler instance."""

    def __init__(self) -> None:
        self._registrations: dict[str, ResourceTypeRegistration] = {}

    def register(self, model: type[Resource], handler: ResourceHandler[Any]) -> None:
        resource_type = getattr(model, "resource_type", "")
        if not isinstance(resource_type, str) or not resource_type:
            raise ValueError(f"{model.__name__} must set a non-empty `resource_type` classvar")
        if resource_type in self._registrations:
            raise ValueError(f"Resource type already registered: {resource_type}")
        self._registrations[resource_type] = ResourceTypeRegistration(resource_type, model, handler)

    def get(self, resource_type: str) -> ResourceTypeRegistration:
        registration = self._registrations.get(resource_type)
        if registration is None:
            raise UnknownResourceTypeError(resource_type)
        return registration

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._registrations

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._registrations))
