"""CodeDeploy resource models: applications, deployment configs and groups."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from aws_provisioner.resources.base import Resource
from aws_provisioner.resources.markers import (
    ApiField,
    Compare,
    Ref,
    ResourceRef,
    build_api_params,
)

ComputePlatform = Literal["Server", "Lambda", "ECS"]

BUILTIN_CONFIG_PREFIX = "CodeDeployDefault."


class CodeDeployAppResource(Resource):
    """A CodeDeploy application.

    Applications are created synchronously, so they are provisioned first and
    everything else in the service hangs off them by name.
    """

    resource_type: ClassVar[str] = "aws_codedeploy_app"
    namespace: ClassVar[str] = "codedeploy_app"
    plan_priority: ClassVar[int] = 10
    default_timeout: ClassVar[float] = 5 * 60.0

    compute_platform: Annotated[ComputePlatform, ApiField("computePlatform")] = "Server"


class MinimumHealthyHosts(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Annotated[Literal["HOST_COUNT", "FLEET_PERCENT"], ApiField("type")]
    value: Annotated[int, ApiField("value")] = Field(ge=0)

    @model_validator(mode="after")
    def _check_percent(self) -> Self:
        if self.type == "FLEET_PERCENT" and self.value > 100:
            raise ValueError("FLEET_PERCENT value must be between 0 and 100")
        return self


class TimeBasedCanary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    percentage: Annotated[int, ApiField("canaryPercentage")] = Field(ge=1, le=99)
    interval: Annotated[int, ApiField("canaryInterval")] = Field(ge=1)


class TimeBasedLinear(BaseModel):
    model_config = ConfigDict(extra="forbid")

    percentage: Annotated[int, ApiField("linearPercentage")] = Field(ge=1, le=99)
    interval: Annotated[int, ApiField("linearInterval")] = Field(ge=1)


class TrafficRoutingConfig(BaseModel):
    """How traffic shifts to the new version in a Lambda or ECS deployment.

    ``interval`` values are minutes.
    """

    model_config = ConfigDict(extra="forbid")

    type: Literal["TimeBasedCanary", "TimeBasedLinear", "AllAtOnce"] = "AllAtOnce"
    time_based_canary: TimeBasedCanary | None = None
    time_based_linear: TimeBasedLinear | None = None

    @model_validator(mode="after")
    def _check_type_fields(self) -> Self:
        if self.type == "TimeBasedCanary" and self.time_based_canary is None:
            raise ValueError("'time_based_canary' is required when type is 'TimeBasedCanary'")
        if self.type == "TimeBasedLinear" and self.time_based_linear is None:
            raise ValueError("'time_based_linear' is required when type is 'TimeBasedLinear'")
        if self.type != "TimeBasedCanary" and self.time_based_canary is not None:
            raise ValueError(f"'time_based_canary' cannot be used when type is '{self.type}'")
        if self.type != "TimeBasedLinear" and self.time_based_linear is not None:
            raise ValueError(f"'time_based_linear' cannot be used when type is '{self.type}'")
        return self

    def to_api(self) -> dict[str, Any]:
        api: dict[str, Any] = {"type": self.type}
        if self.time_based_canary is not None:
            api["timeBasedCanary"] = build_api_params(self.time_based_canary)
        if self.time_based_linear is not None:
            api["timeBasedLinear"] = build_api_params(self.time_based_linear)
        return api

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> TrafficRoutingConfig:
        canary = raw.get("timeBasedCanary")
        linear = raw.get("timeBasedLinear")
        return cls(
            type=raw.get("type", "AllAtOnce"),
            time_based_canary=(
                TimeBasedCanary(
                    percentage=canary["canaryPercentage"], interval=canary["canaryInterval"]
                )
                if canary
                else None
            ),
            time_based_linear=(
                TimeBasedLinear(
                    percentage=linear["linearPercentage"], interval=linear["linearInterval"]
                )
                if linear
                else None
            ),
        )


class DeploymentConfigResource(Resource):
    """A custom CodeDeploy deployment configuration.

    Deployment configs are immutable in CodeDeploy: changing any field means
    deleting and recreating the config. They do not support tags.
    """

    resource_type: ClassVar[str] = "aws_codedeploy_deployment_config"
    namespace: ClassVar[str] = "deployment_config"
    plan_priority: ClassVar[int] = 20
    default_timeout: ClassVar[float] = 5 * 60.0

    compute_platform: Annotated[ComputePlatform, ApiField("computePlatform")] = "Server"
    minimum_healthy_hosts: MinimumHealthyHosts | None = None
    traffic_routing_config: TrafficRoutingConfig | None = None

    @model_validator(mode="after")
    def _check_platform_fields(self) -> Self:
        if self.tags:
            raise ValueError("deployment configs do not support tags")
        if self.compute_platform == "Server":
            if self.minimum_healthy_hosts is None:
                raise ValueError("'minimum_healthy_hosts' is required for the Server platform")
            if self.traffic_routing_config is not None:
                raise ValueError("'traffic_routing_config' is not supported on the Server platform")
        elif self.minimum_healthy_hosts is not None:
            raise ValueError(
                f"'minimum_healthy_hosts' is not supported on the {self.compute_platform} platform"
            )
        return self

    def to_api_params(self) -> dict[str, Any]:
        params = build_api_params(self)
        if self.minimum_healthy_hosts is not None:
            params["minimumHealthyHosts"] = build_api_params(self.minimum_healthy_hosts)
        if self.traffic_routing_config is not None:
            params["trafficRoutingConfig"] = self.traffic_routing_config.to_api()
        return params


class Ec2TagFilter(BaseModel):
    """Selects EC2 instances for a deployment group by tag."""

    model_config = ConfigDict(extra="forbid")

    key: str | None = None
    value: str | None = None
    type: Literal["KEY_ONLY", "VALUE_ONLY", "KEY_AND_VALUE"] = "KEY_AND_VALUE"

    def to_api(self) -> dict[str, str]:
        api = {"Type": self.type}
        if self.key is not None:
            api["Key"] = self.key
        if self.value is not None:
            api["Value"] = self.value
        return api


class DeploymentGroupResource(Resource):
    """A deployment group inside a CodeDeploy application.

    ``deployment_config_name`` may name one of the built-in
    ``CodeDeployDefault.*`` configs or a ``deployment_config`` managed here.
    """

    resource_type: ClassVar[str] = "aws_codedeploy_deployment_group"
    namespace: ClassVar[str] = "deployment_group"
    plan_priority: ClassVar[int] = 30
    default_timeout: ClassVar[float] = 5 * 60.0

    app_name: Annotated[str, Ref("aws_codedeploy_app")]
    service_role_arn: Annotated[str, ApiField("serviceRoleArn")] = Field(
        pattern=r"^arn:aws[a-zA-Z-]*:iam::"
    )
    deployment_config_name: Annotated[
        str, Ref("aws_codedeploy_deployment_config"), ApiField("deploymentConfigName")
    ] = "CodeDeployDefault.OneAtATime"
    autoscaling_groups: Annotated[
        list[str], ApiField("autoScalingGroups"), Compare("set")
    ] = Field(default_factory=list)
    ec2_tag_filters: list[Ec2TagFilter] = Field(default_factory=list)

    @field_validator("ec2_tag_filters")
    @classmethod
    def _sort_filters(cls, v: list[Ec2TagFilter]) -> list[Ec2TagFilter]:
        return sorted(v, key=lambda f: (f.key or "", f.value or "", f.type))

    @property
    def identity(self) -> str:
        return f"{self.app_name}:{self.name}"

    def references(self) -> list[ResourceRef]:
        # Built-in configs exist in every account and are never managed here.
        return [
            ref
            for ref in super().references()
            if not (
                ref.resource_type == DeploymentConfigResource.resource_type
                and ref.name.startswith(BUILTIN_CONFIG_PREFIX)
            )
        ]

    def to_api_params(self) -> dict[str, Any]:
        params = build_api_params(self)
        params["ec2TagFilters"] = [f.to_api() for f in self.ec2_tag_filters]
        return params
