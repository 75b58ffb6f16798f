"""AWS Provider - Connection configuration for an AWS account/region."""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING, Any, Self

import boto3
from botocore.config import Config as BotoConfig
from pydantic import BaseModel, ConfigDict, PrivateAttr

if TYPE_CHECKING:
    from aws_provisioner.handlers.cloudfront import CloudFrontApi
    from aws_provisioner.handlers.codedeploy import CodeDeployApi


class AWSProvider(BaseModel):
    """Connection configuration for AWS.

    For normal use, provide a region (and optionally a named profile). For
    testing, or when a session is already configured, use `from_clients` to
    inject pre-built service clients.

    Clients are created lazily, once per service, and shared by every handler
    and every concurrent wait. boto3 clients are safe to share across threads.

    Examples:
        # Named profile
        provider = AWSProvider(region="us-east-1", profile="deploy")

        # Injected clients (tests)
        provider = AWSProvider.from_clients(cloudfront=MagicMock())
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    region: str | None = None
    profile: str | None = None
    endpoint_url: str | None = None
    max_attempts: int = 3

    _injected_clients: dict[str, Any] = PrivateAttr(default_factory=dict)
    _client_cache: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_clients(cls, **clients: Any) -> Self:
        """Create a provider with injected boto3 clients keyed by service name.

        Example:
            provider = AWSProvider.from_clients(cloudfront=boto3.client("cloudfront"))
        """
        provider = cls.model_construct()
        provider._injected_clients = dict(clients)
        return provider

    @cached_property
    def session(self) -> boto3.session.Session:
        """Get the boto3 session."""
        return boto3.session.Session(profile_name=self.profile, region_name=self.region)

    def client(self, service: str) -> Any:
        """Get (and cache) the boto3 client for *service*."""
        injected = self._injected_clients.get(service)
        if injected is not None:
            return injected

        if service not in self._client_cache:
            self._client_cache[service] = self.session.client(
                service,
                endpoint_url=self.endpoint_url,
                # SDK-level retries cover the mutating calls; status reads are
                # retried by the waiter.
                config=BotoConfig(retries={"max_attempts": self.max_attempts, "mode": "standard"}),
            )
        return self._client_cache[service]

    # API wrappers for each AWS service
    @cached_property
    def cloudfront(self) -> CloudFrontApi:
        from aws_provisioner.handlers.cloudfront import CloudFrontApi

        return CloudFrontApi(self.client("cloudfront"))

    @cached_property
    def codedeploy(self) -> CodeDeployApi:
        from aws_provisioner.handlers.codedeploy import CodeDeployApi

        return CodeDeployApi(self.client("codedeploy"), sts=self.client("sts"))
