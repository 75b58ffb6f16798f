"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aws_provisioner.resources.base import Resource  # noqa: TC001 - Pydantic needs this at runtime
from aws_provisioner.resources.codedeploy import (
    CodeDeployAppResource,  # noqa: TC001 - Pydantic needs this at runtime
    DeploymentConfigResource,  # noqa: TC001 - Pydantic needs this at runtime
    DeploymentGroupResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from aws_provisioner.resources.timeouts import (
    Duration,  # noqa: TC001 - Pydantic needs this at runtime
)
from aws_provisioner.resources.vpc_origin import (
    VpcOriginResource,  # noqa: TC001 - Pydantic needs this at runtime
)


class ProviderConfig(BaseSettings):
    """AWS provider connection settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``AWSP_`` prefix.  Constructor kwargs take precedence.

    Credentials are never read from YAML: boto3 resolves them from the named
    ``profile`` or its usual environment/instance chain.
    """

    model_config = SettingsConfigDict(env_prefix="AWSP_")

    region: str | None = None
    profile: str | None = None
    stack: str = Field(pattern=r"^[a-zA-Z0-9_-]+$")
    endpoint_url: str | None = None
    poll_interval: Duration = timedelta(seconds=5)
    max_attempts: int = Field(default=3, ge=1)

    @field_validator("poll_interval")
    @classmethod
    def _positive_interval(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("poll_interval must be positive")
        return v

    @property
    def poll_seconds(self) -> float:
        return self.poll_interval.total_seconds()


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


class Config(BaseModel):
    """Provisioning configuration, validating the YAML structure directly."""

    provider: ProviderConfig
    state_path: Path = Path(".aws-state.json")
    vpc_origins: Annotated[list[VpcOriginResource], BeforeValidator(_none_to_list)] = []
    codedeploy_apps: Annotated[list[CodeDeployAppResource], BeforeValidator(_none_to_list)] = []
    deployment_configs: Annotated[
        list[DeploymentConfigResource], BeforeValidator(_none_to_list)
    ] = []
    deployment_groups: Annotated[
        list[DeploymentGroupResource], BeforeValidator(_none_to_list)
    ] = []
    config_dir: Path = Path()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resources(self) -> list[Resource]:
        """All declared resources; ordering is not significant."""
        return [
            *self.codedeploy_apps,
            *self.deployment_configs,
            *self.deployment_groups,
            *self.vpc_origins,
        ]
