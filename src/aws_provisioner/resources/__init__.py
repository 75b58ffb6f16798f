"""AWS resource definitions."""

from aws_provisioner.resources.base import Resource
from aws_provisioner.resources.codedeploy import (
    CodeDeployAppResource,
    DeploymentConfigResource,
    DeploymentGroupResource,
    Ec2TagFilter,
    MinimumHealthyHosts,
    TimeBasedCanary,
    TimeBasedLinear,
    TrafficRoutingConfig,
)
from aws_provisioner.resources.timeouts import Timeouts
from aws_provisioner.resources.vpc_origin import VpcOriginResource

__all__ = [
    "CodeDeployAppResource",
    "DeploymentConfigResource",
    "DeploymentGroupResource",
    "Ec2TagFilter",
    "MinimumHealthyHosts",
    "Resource",
    "TimeBasedCanary",
    "TimeBasedLinear",
    "Timeouts",
    "TrafficRoutingConfig",
    "VpcOriginResource",
]
