"""Base resource class for AWS resources."""

from typing import Annotated, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from aws_provisioner.resources.markers import Compare, ResourceRef, collect_ref_specs
from aws_provisioner.resources.timeouts import Timeouts


class Resource(BaseModel):
    """Base class for all AWS resources.

    Resources are pure data - they define the desired state.
    Handlers know how to CRUD resources and wait for them to settle.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]
    namespace: ClassVar[str]
    plan_priority: ClassVar[int] = 100
    default_timeout: ClassVar[float] = 15 * 60.0

    name: str = Field(pattern=r"^[a-zA-Z0-9_-]+$", max_length=128)
    tags: Annotated[dict[str, str], Compare("exact")] = Field(default_factory=dict)
    timeouts: Timeouts = Field(default_factory=Timeouts)

    # Lifecycle
    depends_on: list[str] = []

    def timeout_for(self, action: str) -> float:
        """Wait timeout in seconds for ``create``/``update``/``delete``."""
        return self.timeouts.seconds(action, self.default_timeout)

    def references(self) -> list[ResourceRef]:
        """Typed references declared on this resource."""
        return collect_ref_specs(self)

    @computed_field
    @property
    def address(self) -> str:
        """Unique address for this resource (e.g., 'aws_codedeploy_app.web')."""
        return f"{self.resource_type}.{self.name}"
