"""Handler for CodeDeploy API calls."""

from __future__ import annotations

from functools import cached_property
from typing import Any


def _tag_list(tags: dict[str, str]) -> list[dict[str, str]]:
    return [{"Key": k, "Value": v} for k, v in sorted(tags.items())]


class CodeDeployApi:
    """Thin wrapper over the boto3 CodeDeploy client."""

    def __init__(self, client: Any, sts: Any | None = None) -> None:
        self.client = client
        self.sts = sts

    # -- applications --------------------------------------------------

    def create_application(
        self, name: str, compute_platform: str, tags: dict[str, str]
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"applicationName": name, "computePlatform": compute_platform}
        if tags:
            kwargs["tags"] = _tag_list(tags)
        return self.client.create_application(**kwargs)

    def get_application(self, name: str) -> dict[str, Any] | None:
        return self.client.get_application(applicationName=name).get("application")

    def delete_application(self, name: str) -> None:
        self.client.delete_application(applicationName=name)

    # -- deployment configs --------------------------------------------

    def create_deployment_config(self, name: str, **params: Any) -> dict[str, Any]:
        return self.client.create_deployment_config(deploymentConfigName=name, **params)

    def get_deployment_config(self, name: str) -> dict[str, Any] | None:
        output = self.client.get_deployment_config(deploymentConfigName=name)
        return output.get("deploymentConfigInfo")

    def delete_deployment_config(self, name: str) -> None:
        self.client.delete_deployment_config(deploymentConfigName=name)

    # -- deployment groups ---------------------------------------------

    def create_deployment_group(
        self, app_name: str, name: str, tags: dict[str, str], **params: Any
    ) -> dict[str, Any]:
        if tags:
            params["tags"] = _tag_list(tags)
        return self.client.create_deployment_group(
            applicationName=app_name, deploymentGroupName=name, **params
        )

    def get_deployment_group(self, app_name: str, name: str) -> dict[str, Any] | None:
        output = self.client.get_deployment_group(
            applicationName=app_name, deploymentGroupName=name
        )
        return output.get("deploymentGroupInfo")

    def update_deployment_group(self, app_name: str, name: str, **params: Any) -> None:
        self.client.update_deployment_group(
            applicationName=app_name, currentDeploymentGroupName=name, **params
        )

    def delete_deployment_group(self, app_name: str, name: str) -> None:
        self.client.delete_deployment_group(applicationName=app_name, deploymentGroupName=name)

    # -- tagging -------------------------------------------------------

    @cached_property
    def _arn_prefix(self) -> str:
        if self.sts is None:
            raise RuntimeError("An STS client is required to build CodeDeploy ARNs")
        identity = self.sts.get_caller_identity()
        partition = identity["Arn"].split(":")[1]
        region = self.client.meta.region_name
        return f"arn:{partition}:codedeploy:{region}:{identity['Account']}"

    def application_arn(self, name: str) -> str:
        return f"{self._arn_prefix}:application:{name}"

    def deployment_group_arn(self, app_name: str, name: str) -> str:
        return f"{self._arn_prefix}:deploymentgroup:{app_name}/{name}"

    def list_tags(self, arn: str) -> dict[str, str]:
        output = self.client.list_tags_for_resource(ResourceArn=arn)
        return {t["Key"]: t.get("Value", "") for t in output.get("Tags", [])}

    def set_tags(self, arn: str, desired: dict[str, str], current: dict[str, str]) -> None:
        """Reconcile resource tags: add/overwrite desired, remove the rest."""
        removed = sorted(set(current) - set(desired))
        if removed:
            self.client.untag_resource(ResourceArn=arn, TagKeys=removed)
        changed = {k: v for k, v in desired.items() if current.get(k) != v}
        if changed:
            self.client.tag_resource(ResourceArn=arn, Tags=_tag_list(changed))
