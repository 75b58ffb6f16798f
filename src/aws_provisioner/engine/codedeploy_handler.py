"""CodeDeploy handlers: applications, deployment configs and deployment groups.

CodeDeploy applies changes synchronously and has no status field. Its
handlers report a synthetic ``Available`` status while the object can be
read, which lets them share the mutate-then-wait lifecycle: creates wait
until the new object is readable, deletes until it is no longer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aws_provisioner.engine.lifecycle import WaitingResourceHandler, WaitStates
from aws_provisioner.handlers.base import sync_tags
from aws_provisioner.resources.codedeploy import (
    BUILTIN_CONFIG_PREFIX,
    CodeDeployAppResource,
    DeploymentConfigResource,
    Ec2TagFilter,
    MinimumHealthyHosts,
    TrafficRoutingConfig,
)
from aws_provisioner.resources.markers import extract_api_attrs

if TYPE_CHECKING:
    from aws_provisioner.core.state import ResourceInstance
    from aws_provisioner.engine.handlers import EngineContext, PlanContext
    from aws_provisioner.handlers.codedeploy import CodeDeployApi
    from aws_provisioner.resources.codedeploy import DeploymentGroupResource

logger = logging.getLogger(__name__)

AVAILABLE = "Available"

_WAIT_STATES = {
    "create": WaitStates(target=AVAILABLE),
    "update": WaitStates(target=AVAILABLE),
    # Reads can still return a deleted object for a short while.
    "delete": WaitStates(pending=AVAILABLE),
}


class _CodeDeployHandler(WaitingResourceHandler):
    wait_states = _WAIT_STATES
    not_found_checks = 3

    def _api(self, ctx: EngineContext) -> CodeDeployApi:
        return ctx.provider.codedeploy

    def status_of(self, obj: dict[str, Any]) -> str | None:
        _ = obj
        return AVAILABLE


class CodeDeployAppHandler(_CodeDeployHandler):
    """CRUD handler for CodeDeploy applications. The identity is the app name."""

    resource_kind = "CodeDeploy application"

    def read_remote(self, ctx: EngineContext, identity: str) -> dict[str, Any] | None:
        return self._api(ctx).get_application(identity)

    def computed_attrs(self, ctx: EngineContext, obj: dict[str, Any]) -> dict[str, Any]:
        name = obj["applicationName"]
        return {
            "id": name,
            "application_id": obj.get("applicationId"),
            "arn": self._api(ctx).application_arn(name),
        }

    def read_attrs(
        self, ctx: EngineContext, obj: dict[str, Any], prior: ResourceInstance
    ) -> dict[str, Any]:
        _ = prior
        attrs = {
            "name": obj["applicationName"],
            **extract_api_attrs(CodeDeployAppResource, obj),
            **self.computed_attrs(ctx, obj),
        }
        attrs["tags"] = self._api(ctx).list_tags(attrs["arn"])
        return attrs

    def create(self, ctx: EngineContext, desired: CodeDeployAppResource) -> dict[str, Any]:
        api = self._api(ctx)
        outcome = self.run_lifecycle(
            ctx,
            action="create",
            identity=desired.name,
            mutate=lambda: api.create_application(
                desired.name, desired.compute_platform, desired.tags
            ),
            timeout=desired.timeout_for("create"),
        )
        outcome.raise_for_error()
        logger.info("Created CodeDeploy application %s", desired.name)
        return self.merge(ctx, self.desired_attrs(desired), outcome)

    def update(
        self, ctx: EngineContext, desired: CodeDeployAppResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        """Only tags can change in place."""
        if prior.attributes.get("compute_platform") != desired.compute_platform:
            raise ValueError(
                f"Cannot change compute_platform of application '{desired.name}' in place; "
                "delete it and create it again"
            )
        api = self._api(ctx)
        current_tags = prior.attributes.get("tags", {})
        outcome = self.run_lifecycle(
            ctx,
            action="update",
            identity=desired.name,
            mutate=lambda: sync_tags(
                api, api.application_arn(desired.name), desired.tags, current_tags
            ),
            timeout=desired.timeout_for("update"),
        )
        outcome.raise_for_error()
        return self.merge(ctx, self.desired_attrs(desired), outcome)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        api = self._api(ctx)
        identity = prior.identity or prior.name
        outcome = self.run_lifecycle(
            ctx,
            action="delete",
            identity=identity,
            mutate=lambda: api.delete_application(identity),
            timeout=self.delete_timeout(prior),
        )
        outcome.raise_for_error()


class DeploymentConfigHandler(_CodeDeployHandler):
    """CRUD handler for custom deployment configs. There is no update path."""

    resource_kind = "CodeDeploy deployment config"

    def read_remote(self, ctx: EngineContext, identity: str) -> dict[str, Any] | None:
        return self._api(ctx).get_deployment_config(identity)

    def computed_attrs(self, ctx: EngineContext, obj: dict[str, Any]) -> dict[str, Any]:
        _ = ctx
        return {
            "id": obj["deploymentConfigName"],
            "deployment_config_id": obj.get("deploymentConfigId"),
        }

    def read_attrs(
        self, ctx: EngineContext, obj: dict[str, Any], prior: ResourceInstance
    ) -> dict[str, Any]:
        _ = prior
        attrs: dict[str, Any] = {
            "name": obj["deploymentConfigName"],
            **extract_api_attrs(DeploymentConfigResource, obj),
            "tags": {},
            **self.computed_attrs(ctx, obj),
        }
        platform = attrs["compute_platform"]
        hosts = obj.get("minimumHealthyHosts")
        if platform == "Server" and hosts:
            attrs["minimum_healthy_hosts"] = MinimumHealthyHosts(
                type=hosts["type"], value=hosts["value"]
            ).model_dump()
        routing = obj.get("trafficRoutingConfig")
        if platform != "Server" and routing:
            attrs["traffic_routing_config"] = TrafficRoutingConfig.from_api(routing).model_dump(
                exclude_none=True
            )
        return attrs

    def create(self, ctx: EngineContext, desired: DeploymentConfigResource) -> dict[str, Any]:
        api = self._api(ctx)
        outcome = self.run_lifecycle(
            ctx,
            action="create",
            identity=desired.name,
            mutate=lambda: api.create_deployment_config(desired.name, **desired.to_api_params()),
            timeout=desired.timeout_for("create"),
        )
        outcome.raise_for_error()
        return self.merge(ctx, self.desired_attrs(desired), outcome)

    def update(
        self, ctx: EngineContext, desired: DeploymentConfigResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        _ = ctx, prior
        raise ValueError(
            f"Deployment config '{desired.name}' cannot be changed in place; "
            "delete it and create it again under a new name"
        )

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        api = self._api(ctx)
        identity = prior.identity or prior.name
        outcome = self.run_lifecycle(
            ctx,
            action="delete",
            identity=identity,
            mutate=lambda: api.delete_deployment_config(identity),
            timeout=self.delete_timeout(prior),
        )
        outcome.raise_for_error()


def _split_group_identity(identity: str) -> tuple[str, str]:
    app_name, sep, name = identity.partition(":")
    if not sep:
        raise ValueError(f"Invalid deployment group id '{identity}', expected 'app:group'")
    return app_name, name


class DeploymentGroupHandler(_CodeDeployHandler):
    """CRUD handler for deployment groups. The identity is ``"<app>:<group>"``."""

    resource_kind = "CodeDeploy deployment group"

    def validate_plan(
        self,
        ctx: EngineContext,
        desired: DeploymentGroupResource,
        plan_ctx: PlanContext,
    ) -> list[str]:
        _ = ctx
        errors: list[str] = []
        config = desired.deployment_config_name
        if not config.startswith(BUILTIN_CONFIG_PREFIX) and not plan_ctx.has_resource(
            config, resource_type="aws_codedeploy_deployment_config"
        ):
            errors.append(
                f"Deployment group '{desired.name}' references unknown deployment config "
                f"'{config}'"
            )
        return errors

    def read_remote(self, ctx: EngineContext, identity: str) -> dict[str, Any] | None:
        app_name, name = _split_group_identity(identity)
        return self._api(ctx).get_deployment_group(app_name, name)

    def computed_attrs(self, ctx: EngineContext, obj: dict[str, Any]) -> dict[str, Any]:
        app_name = obj["applicationName"]
        name = obj["deploymentGroupName"]
        return {
            "id": f"{app_name}:{name}",
            "deployment_group_id": obj.get("deploymentGroupId"),
            "arn": self._api(ctx).deployment_group_arn(app_name, name),
        }

    def read_attrs(
        self, ctx: EngineContext, obj: dict[str, Any], prior: ResourceInstance
    ) -> dict[str, Any]:
        _ = prior
        filters = [
            Ec2TagFilter(
                key=f.get("Key"), value=f.get("Value"), type=f.get("Type", "KEY_AND_VALUE")
            )
            for f in obj.get("ec2TagFilters", [])
        ]
        filters.sort(key=lambda f: (f.key or "", f.value or "", f.type))
        attrs: dict[str, Any] = {
            "name": obj["deploymentGroupName"],
            "app_name": obj["applicationName"],
            "service_role_arn": obj.get("serviceRoleArn"),
            "deployment_config_name": obj.get("deploymentConfigName"),
            "autoscaling_groups": sorted(g["name"] for g in obj.get("autoScalingGroups", [])),
            "ec2_tag_filters": [f.model_dump(exclude_none=True) for f in filters],
            **self.computed_attrs(ctx, obj),
        }
        attrs["tags"] = self._api(ctx).list_tags(attrs["arn"])
        return attrs

    def create(self, ctx: EngineContext, desired: DeploymentGroupResource) -> dict[str, Any]:
        api = self._api(ctx)
        outcome = self.run_lifecycle(
            ctx,
            action="create",
            identity=desired.identity,
            mutate=lambda: api.create_deployment_group(
                desired.app_name, desired.name, desired.tags, **desired.to_api_params()
            ),
            timeout=desired.timeout_for("create"),
        )
        outcome.raise_for_error()
        return self.merge(ctx, self.desired_attrs(desired), outcome)

    def update(
        self, ctx: EngineContext, desired: DeploymentGroupResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        if prior.identity is not None and prior.identity != desired.identity:
            raise ValueError(
                f"Cannot move deployment group '{desired.name}' to application "
                f"'{desired.app_name}' in place; delete it and create it again"
            )
        api = self._api(ctx)
        current_tags = prior.attributes.get("tags", {})

        def mutate() -> None:
            api.update_deployment_group(desired.app_name, desired.name, **desired.to_api_params())
            sync_tags(
                api,
                api.deployment_group_arn(desired.app_name, desired.name),
                desired.tags,
                current_tags,
            )

        outcome = self.run_lifecycle(
            ctx,
            action="update",
            identity=desired.identity,
            mutate=mutate,
            timeout=desired.timeout_for("update"),
        )
        outcome.raise_for_error()
        return self.merge(ctx, self.desired_attrs(desired), outcome)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        api = self._api(ctx)
        identity = prior.identity
        if identity is None:
            identity = f"{prior.attributes.get('app_name')}:{prior.name}"
            logger.debug("No id recorded for %s; deleting %s", prior.address, identity)
        app_name, name = _split_group_identity(identity)
        outcome = self.run_lifecycle(
            ctx,
            action="delete",
            identity=identity,
            mutate=lambda: api.delete_deployment_group(app_name, name),
            timeout=self.delete_timeout(prior),
        )
        outcome.raise_for_error()
