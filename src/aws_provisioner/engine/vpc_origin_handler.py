"""CloudFront VPC origin handler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aws_provisioner.engine.lifecycle import WaitingResourceHandler, WaitStates
from aws_provisioner.handlers.base import sync_tags
from aws_provisioner.resources.markers import extract_api_attrs
from aws_provisioner.resources.vpc_origin import VpcOriginResource
from aws_provisioner.waiter import is_not_found

if TYPE_CHECKING:
    from datetime import datetime

    from aws_provisioner.core.state import ResourceInstance
    from aws_provisioner.engine.handlers import EngineContext
    from aws_provisioner.handlers.cloudfront import CloudFrontApi

logger = logging.getLogger(__name__)


def _iso(value: datetime | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


class VpcOriginHandler(WaitingResourceHandler[VpcOriginResource]):
    """CRUD handler for CloudFront VPC origins.

    Every mutation is followed by a wait: create and update until the origin
    reports ``Deployed``, delete until CloudFront no longer knows the id.
    Update and delete are guarded by the ETag from the last read.
    """

    resource_kind = "CloudFront VPC origin"
    wait_states = {
        "create": WaitStates(pending="Deploying", target="Deployed"),
        "update": WaitStates(pending="Deploying", target="Deployed"),
        "delete": WaitStates(pending=frozenset({"Deploying", "Deleting"})),
    }

    def _api(self, ctx: EngineContext) -> CloudFrontApi:
        return ctx.provider.cloudfront

    def read_remote(self, ctx: EngineContext, identity: str) -> dict[str, Any] | None:
        return self._api(ctx).get_vpc_origin(identity)

    def status_of(self, obj: dict[str, Any]) -> str | None:
        return obj["VpcOrigin"].get("Status")

    def computed_attrs(self, ctx: EngineContext, obj: dict[str, Any]) -> dict[str, Any]:
        _ = ctx
        origin = obj["VpcOrigin"]
        return {
            "id": origin["Id"],
            "arn": origin.get("Arn"),
            "etag": obj.get("ETag"),
            "status": origin.get("Status"),
            "created_time": _iso(origin.get("CreatedTime")),
            "last_modified_time": _iso(origin.get("LastModifiedTime")),
        }

    def read_attrs(
        self, ctx: EngineContext, obj: dict[str, Any], prior: ResourceInstance
    ) -> dict[str, Any]:
        config = obj["VpcOrigin"].get("VpcOriginEndpointConfig", {})
        attrs: dict[str, Any] = {
            "name": config.get("Name", prior.name),
            **extract_api_attrs(VpcOriginResource, config),
            "origin_ssl_protocols": sorted(
                config.get("OriginSslProtocols", {}).get("Items", [])
            ),
        }
        attrs.update(self.computed_attrs(ctx, obj))
        attrs["tags"] = self._api(ctx).list_tags(attrs["arn"]) if attrs["arn"] else {}
        return attrs

    def create(self, ctx: EngineContext, desired: VpcOriginResource) -> dict[str, Any]:
        """Create a VPC origin and wait for it to deploy."""
        api = self._api(ctx)
        outcome = self.run_lifecycle(
            ctx,
            action="create",
            identity=None,
            mutate=lambda: api.create_vpc_origin(desired.endpoint_config(), desired.tags),
            identity_of=lambda out: out["VpcOrigin"]["Id"],
            timeout=desired.timeout_for("create"),
        )
        outcome.raise_for_error()
        logger.info("Created VPC origin %s", outcome.identity)
        return self.merge(ctx, self.desired_attrs(desired), outcome)

    def update(
        self, ctx: EngineContext, desired: VpcOriginResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        """Update the endpoint config and tags, then wait for redeployment."""
        api = self._api(ctx)
        identity = prior.identity
        etag = prior.etag
        if identity is None or etag is None:
            raise ValueError(f"State for {prior.address} has no id/etag; run refresh first")

        outcome = self.run_lifecycle(
            ctx,
            action="update",
            identity=identity,
            mutate=lambda: api.update_vpc_origin(identity, desired.endpoint_config(), etag),
            timeout=desired.timeout_for("update"),
        )
        outcome.raise_for_error()

        attrs = self.merge(ctx, self.desired_attrs(desired), outcome)
        sync_tags(api, attrs.get("arn"), desired.tags, prior.attributes.get("tags", {}))
        return attrs

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        """Delete the VPC origin and wait until it is gone."""
        api = self._api(ctx)
        identity = prior.identity
        if identity is None:
            logger.warning("No id recorded for %s; nothing to delete", prior.address)
            return

        etag = prior.etag
        if etag is None:
            try:
                current = api.get_vpc_origin(identity)
            except Exception as exc:
                if not is_not_found(exc):
                    raise
                current = None
            if current is None:
                logger.info("VPC origin %s is already gone", identity)
                return
            etag = current["ETag"]

        outcome = self.run_lifecycle(
            ctx,
            action="delete",
            identity=identity,
            mutate=lambda: api.delete_vpc_origin(identity, etag),
            timeout=self.delete_timeout(prior),
        )
        outcome.raise_for_error()

