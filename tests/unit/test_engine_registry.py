from typing import ClassVar

import pytest

from aws_provisioner.config.registry import default_registry
from aws_provisioner.engine.errors import UnknownResourceTypeError
from aws_provisioner.engine.handlers import ResourceHandler
from aws_provisioner.engine.lifecycle import WaitingResourceHandler
from aws_provisioner.engine.registry import ResourceTypeRegistry
from aws_provisioner.resources.base import Resource


class DummyResource(Resource):
    resource_type: ClassVar[str] = "dummy"
    namespace: ClassVar[str] = "dummy"


class UntypedResource(Resource):
    namespace: ClassVar[str] = "untyped"


def test_register_and_get() -> None:
    registry = ResourceTypeRegistry()
    handler: ResourceHandler[DummyResource] = ResourceHandler()

    registry.register(DummyResource, handler)
    reg = registry.get("dummy")

    assert reg.resource_type == "dummy"
    assert reg.model is DummyResource
    assert reg.handler is handler


def test_duplicate_registration_rejected() -> None:
    registry = ResourceTypeRegistry()
    registry.register(DummyResource, ResourceHandler())

    with pytest.raises(ValueError, match="already registered: dummy"):
        registry.register(DummyResource, ResourceHandler())


def test_model_without_resource_type_rejected() -> None:
    with pytest.raises(ValueError, match="resource_type"):
        ResourceTypeRegistry().register(UntypedResource, ResourceHandler())


def test_unknown_type() -> None:
    with pytest.raises(UnknownResourceTypeError, match="aws_s3_bucket"):
        ResourceTypeRegistry().get("aws_s3_bucket")


@pytest.mark.parametrize(
    "resource_type",
    [
        "aws_cloudfront_vpc_origin",
        "aws_codedeploy_app",
        "aws_codedeploy_deployment_config",
        "aws_codedeploy_deployment_group",
    ],
)
def test_builtin_types_use_waiting_handlers(resource_type: str) -> None:
    reg = default_registry().get(resource_type)
    assert isinstance(reg.handler, WaitingResourceHandler)
    assert reg.model.resource_type == resource_type


def test_membership_and_iteration() -> None:
    registry = default_registry()

    assert "aws_codedeploy_app" in registry
    assert "dummy" not in registry
    assert list(registry) == [
        "aws_cloudfront_vpc_origin",
        "aws_codedeploy_app",
        "aws_codedeploy_deployment_config",
        "aws_codedeploy_deployment_group",
    ]
