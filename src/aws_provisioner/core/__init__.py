"""Core infrastructure components for AWS Provisioner."""

from aws_provisioner.core.provider import AWSProvider
from aws_provisioner.core.state import ResourceInstance, State

__all__ = ["AWSProvider", "ResourceInstance", "State"]
