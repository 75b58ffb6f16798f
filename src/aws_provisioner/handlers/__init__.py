"""API wrappers for AWS services."""

from aws_provisioner.handlers.base import ServiceApi, sync_tags
from aws_provisioner.handlers.cloudfront import CloudFrontApi
from aws_provisioner.handlers.codedeploy import CodeDeployApi

__all__ = [
    "CloudFrontApi",
    "CodeDeployApi",
    "ServiceApi",
    "sync_tags",
]
