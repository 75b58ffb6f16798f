"""Tests for the CloudFront VPC origin handler."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from aws_provisioner.core import AWSProvider, ResourceInstance
from aws_provisioner.engine.errors import ResourceOperationError
from aws_provisioner.engine.handlers import EngineContext
from aws_provisioner.engine.vpc_origin_handler import VpcOriginHandler
from aws_provisioner.resources.vpc_origin import VpcOriginResource
from aws_provisioner.waiter import UnexpectedStateError, WaitTimeoutError

if TYPE_CHECKING:
    from collections.abc import Callable

    from botocore.exceptions import ClientError

ALB_ARN = "arn:aws:elasticloadbalancing:us-east-1:123456789012:loadbalancer/app/web/abc"
ORIGIN_ARN = "arn:aws:cloudfront::123456789012:vpcorigin/vo-1"
CREATED = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


def _response(status: str, *, etag: str = "E1", port: int = 80) -> dict[str, Any]:
    return {
        "ETag": etag,
        "VpcOrigin": {
            "Id": "vo-1",
            "Arn": ORIGIN_ARN,
            "Status": status,
            "CreatedTime": CREATED,
            "LastModifiedTime": CREATED,
            "VpcOriginEndpointConfig": {
                "Name": "web",
                "Arn": ALB_ARN,
                "HTTPPort": port,
                "HTTPSPort": 443,
                "OriginProtocolPolicy": "https-only",
                "OriginSslProtocols": {"Quantity": 1, "Items": ["TLSv1.2"]},
            },
        },
    }


def _resource(**kwargs: Any) -> VpcOriginResource:
    defaults: dict[str, Any] = {
        "name": "web",
        "origin_arn": ALB_ARN,
        "http_port": 80,
        "https_port": 443,
        "origin_protocol_policy": "https-only",
        "origin_ssl_protocols": ["TLSv1.2"],
    }
    defaults.update(kwargs)
    return VpcOriginResource(**defaults)


def _prior(**attrs: Any) -> ResourceInstance:
    return ResourceInstance(
        address="aws_cloudfront_vpc_origin.web",
        resource_type="aws_cloudfront_vpc_origin",
        name="web",
        attributes={"id": "vo-1", "etag": "E1", "arn": ORIGIN_ARN, "tags": {}, **attrs},
        timeouts={"delete": 5.0},
    )


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def ctx(client: MagicMock) -> EngineContext:
    return EngineContext(
        provider=AWSProvider.from_clients(cloudfront=client), stack="test", poll_interval=0.001
    )


@pytest.fixture
def handler() -> VpcOriginHandler:
    return VpcOriginHandler()


class TestCreate:
    def test_waits_until_deployed_and_merges_computed(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        client.create_vpc_origin.return_value = _response("Deploying", etag="E0")
        client.get_vpc_origin.side_effect = [
            _response("Deploying", etag="E0"),
            _response("Deploying", etag="E0"),
            _response("Deployed", etag="E2"),
        ]

        attrs = handler.create(ctx, _resource(tags={"env": "prod"}))

        sent = client.create_vpc_origin.call_args.kwargs
        assert sent["VpcOriginEndpointConfig"]["Name"] == "web"
        assert sent["VpcOriginEndpointConfig"]["OriginSslProtocols"] == {
            "Quantity": 1,
            "Items": ["TLSv1.2"],
        }
        assert sent["Tags"] == {"Items": [{"Key": "env", "Value": "prod"}]}
        assert client.get_vpc_origin.call_count == 3
        assert attrs["id"] == "vo-1"
        assert attrs["etag"] == "E2"
        assert attrs["status"] == "Deployed"
        assert attrs["created_time"] == CREATED.isoformat()
        assert attrs["http_port"] == 80
        assert attrs["tags"] == {"env": "prod"}
        assert "timeouts" not in attrs

    def test_failed_call_without_identity_does_not_wait(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        client.create_vpc_origin.side_effect = client_error(
            "EntityLimitExceeded", 400, "CreateVpcOrigin"
        )

        with pytest.raises(ResourceOperationError) as exc_info:
            handler.create(ctx, _resource())

        assert exc_info.value.action == "create"
        assert exc_info.value.identity is None
        client.get_vpc_origin.assert_not_called()

    def test_unexpected_status_fails_the_create(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        client.create_vpc_origin.return_value = _response("Deploying")
        client.get_vpc_origin.return_value = _response("Failed")

        with pytest.raises(ResourceOperationError) as exc_info:
            handler.create(ctx, _resource())

        err = exc_info.value
        assert err.identity == "vo-1"
        assert err.resource_kind == "CloudFront VPC origin"
        assert isinstance(err.cause, UnexpectedStateError)
        assert err.cause.last_object["VpcOrigin"]["Status"] == "Failed"

    def test_create_timeout_from_resource(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        client.create_vpc_origin.return_value = _response("Deploying")
        client.get_vpc_origin.return_value = _response("Deploying")

        with pytest.raises(ResourceOperationError) as exc_info:
            handler.create(ctx, _resource(timeouts={"create": "50ms"}))

        assert isinstance(exc_info.value.cause, WaitTimeoutError)
        assert exc_info.value.cause.last_status == "Deploying"


class TestUpdate:
    def test_sends_etag_and_reconciles_tags(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        client.update_vpc_origin.return_value = _response("Deploying", etag="E3")
        client.get_vpc_origin.side_effect = [
            _response("Deploying", etag="E3", port=8080),
            _response("Deployed", etag="E4", port=8080),
        ]
        prior = _prior(tags={"env": "dev", "old": "x"})

        attrs = handler.update(ctx, _resource(http_port=8080, tags={"env": "prod"}), prior)

        kwargs = client.update_vpc_origin.call_args.kwargs
        assert kwargs["Id"] == "vo-1"
        assert kwargs["IfMatch"] == "E1"
        assert kwargs["VpcOriginEndpointConfig"]["HTTPPort"] == 8080
        client.untag_resource.assert_called_once_with(
            Resource=ORIGIN_ARN, TagKeys={"Items": ["old"]}
        )
        client.tag_resource.assert_called_once_with(
            Resource=ORIGIN_ARN, Tags={"Items": [{"Key": "env", "Value": "prod"}]}
        )
        assert attrs["etag"] == "E4"
        assert attrs["http_port"] == 8080

    def test_unchanged_tags_are_left_alone(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        client.update_vpc_origin.return_value = _response("Deploying")
        client.get_vpc_origin.return_value = _response("Deployed", etag="E2")

        handler.update(ctx, _resource(https_port=8443), _prior())

        client.tag_resource.assert_not_called()
        client.untag_resource.assert_not_called()

    def test_rejected_update_still_reports_final_state(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        rejected = client_error("PreconditionFailed", 412, "UpdateVpcOrigin")
        client.update_vpc_origin.side_effect = rejected
        client.get_vpc_origin.return_value = _response("Deployed", etag="E9")

        with pytest.raises(ResourceOperationError) as exc_info:
            handler.update(ctx, _resource(http_port=8080), _prior())

        err = exc_info.value
        assert err.cause is rejected
        assert err.wait_error is None
        client.get_vpc_origin.assert_called_with(Id="vo-1")

    def test_requires_recorded_etag(self, handler: VpcOriginHandler, ctx: EngineContext) -> None:
        prior = _prior()
        del prior.attributes["etag"]

        with pytest.raises(ValueError, match="no id/etag"):
            handler.update(ctx, _resource(), prior)


class TestDelete:
    def test_waits_until_gone(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        client.get_vpc_origin.side_effect = [
            _response("Deleting"),
            client_error("EntityNotFound", 404, "GetVpcOrigin"),
        ]

        handler.delete(ctx, _prior())

        client.delete_vpc_origin.assert_called_once_with(Id="vo-1", IfMatch="E1")
        assert client.get_vpc_origin.call_count == 2

    def test_fetches_missing_etag_first(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        client.get_vpc_origin.side_effect = [
            _response("Deployed", etag="E7"),
            client_error("EntityNotFound", 404, "GetVpcOrigin"),
        ]
        prior = _prior()
        del prior.attributes["etag"]

        handler.delete(ctx, prior)

        client.delete_vpc_origin.assert_called_once_with(Id="vo-1", IfMatch="E7")

    def test_origin_gone_before_etag_lookup_is_a_noop(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        client.get_vpc_origin.side_effect = client_error("NoSuchVpcOrigin", 404, "GetVpcOrigin")
        prior = _prior()
        del prior.attributes["etag"]

        handler.delete(ctx, prior)

        client.delete_vpc_origin.assert_not_called()

    def test_etag_lookup_access_denied_propagates(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        client.get_vpc_origin.side_effect = client_error("AccessDenied", 403, "GetVpcOrigin")
        prior = _prior()
        del prior.attributes["etag"]

        with pytest.raises(Exception, match="AccessDenied"):
            handler.delete(ctx, prior)

        client.delete_vpc_origin.assert_not_called()

    def test_already_deleted_origin_is_fine(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        gone = client_error("NoSuchVpcOrigin", 404, "DeleteVpcOrigin")
        client.delete_vpc_origin.side_effect = gone
        client.get_vpc_origin.side_effect = gone

        handler.delete(ctx, _prior())

    def test_uses_stored_delete_timeout(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        client.get_vpc_origin.return_value = _response("Deleting")
        prior = _prior()
        prior.timeouts = {"delete": 0.05}

        with pytest.raises(ResourceOperationError) as exc_info:
            handler.delete(ctx, prior)

        cause = exc_info.value.cause
        assert isinstance(cause, WaitTimeoutError)
        assert cause.timeout == 0.05

    def test_without_identity_is_a_noop(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        prior = _prior()
        del prior.attributes["id"]

        handler.delete(ctx, prior)

        client.delete_vpc_origin.assert_not_called()


class TestRead:
    def test_maps_remote_object(
        self, handler: VpcOriginHandler, ctx: EngineContext, client: MagicMock
    ) -> None:
        client.get_vpc_origin.return_value = _response("Deployed", etag="E5")
        client.list_tags_for_resource.return_value = {
            "Tags": {"Items": [{"Key": "env", "Value": "prod"}]}
        }

        attrs = handler.read(ctx, _prior())

        assert attrs == {
            "name": "web",
            "origin_arn": ALB_ARN,
            "http_port": 80,
            "https_port": 443,
            "origin_protocol_policy": "https-only",
            "origin_ssl_protocols": ["TLSv1.2"],
            "id": "vo-1",
            "arn": ORIGIN_ARN,
            "etag": "E5",
            "status": "Deployed",
            "created_time": CREATED.isoformat(),
            "last_modified_time": CREATED.isoformat(),
            "tags": {"env": "prod"},
        }

    def test_missing_origin_reads_as_none(
        self,
        handler: VpcOriginHandler,
        ctx: EngineContext,
        client: MagicMock,
        client_error: Callable[..., ClientError],
    ) -> None:
        client.get_vpc_origin.side_effect = client_error("EntityNotFound", 404, "GetVpcOrigin")

        assert handler.read(ctx, _prior()) is None
