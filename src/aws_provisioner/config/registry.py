"""Default resource type registry factory."""

from __future__ import annotations

from aws_provisioner.engine.codedeploy_handler import (
    CodeDeployAppHandler,
    DeploymentConfigHandler,
    DeploymentGroupHandler,
)
from aws_provisioner.engine.registry import ResourceTypeRegistry
from aws_provisioner.engine.vpc_origin_handler import VpcOriginHandler
from aws_provisioner.resources.codedeploy import (
    CodeDeployAppResource,
    DeploymentConfigResource,
    DeploymentGroupResource,
)
from aws_provisioner.resources.vpc_origin import VpcOriginResource


def default_registry() -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource types and handlers."""
    registry = ResourceTypeRegistry()

    registry.register(VpcOriginResource, VpcOriginHandler())

    registry.register(CodeDeployAppResource, CodeDeployAppHandler())
    registry.register(DeploymentConfigResource, DeploymentConfigHandler())
    registry.register(DeploymentGroupResource, DeploymentGroupHandler())

    return registry
