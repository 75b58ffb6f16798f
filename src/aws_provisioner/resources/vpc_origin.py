"""CloudFront VPC origin resource model."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal

from pydantic import Field, field_validator

from aws_provisioner.resources.base import Resource
from aws_provisioner.resources.markers import ApiField, Compare, build_api_params

SslProtocol = Literal["SSLv3", "TLSv1", "TLSv1.1", "TLSv1.2"]
OriginProtocolPolicy = Literal["http-only", "match-viewer", "https-only"]


class VpcOriginResource(Resource):
    """A CloudFront VPC origin.

    Lets a distribution reach an ALB, NLB or EC2 instance in a private subnet.
    CloudFront deploys the origin asynchronously: it reports ``Deploying``
    until the change has propagated and ``Deployed`` afterwards.

    The resource ``name`` is also the VPC origin's name in CloudFront.
    """

    resource_type: ClassVar[str] = "aws_cloudfront_vpc_origin"
    namespace: ClassVar[str] = "vpc_origin"

    origin_arn: Annotated[str, ApiField("Arn")] = Field(pattern=r"^arn:aws[a-zA-Z-]*:")
    http_port: Annotated[int, ApiField("HTTPPort")] = Field(ge=1, le=65535)
    https_port: Annotated[int, ApiField("HTTPSPort")] = Field(ge=1, le=65535)
    origin_protocol_policy: Annotated[OriginProtocolPolicy, ApiField("OriginProtocolPolicy")]
    origin_ssl_protocols: Annotated[list[SslProtocol], Compare("set")] = Field(min_length=1)

    @field_validator("origin_ssl_protocols")
    @classmethod
    def _dedupe_protocols(cls, v: list[str]) -> list[str]:
        return sorted(set(v))

    def endpoint_config(self) -> dict[str, Any]:
        """Build the ``VpcOriginEndpointConfig`` request shape."""
        config = build_api_params(self)
        config["Name"] = self.name
        config["OriginSslProtocols"] = {
            "Quantity": len(self.origin_ssl_protocols),
            "Items": list(self.origin_ssl_protocols),
        }
        return config
