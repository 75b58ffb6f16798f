"""Handler for CloudFront API calls."""

from __future__ import annotations

from typing import Any


class CloudFrontApi:
    """Thin wrapper over the boto3 CloudFront client for VPC origins."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def create_vpc_origin(
        self, endpoint_config: dict[str, Any], tags: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """Create a VPC origin. Returns ``{"VpcOrigin": ..., "ETag": ...}``."""
        kwargs: dict[str, Any] = {"VpcOriginEndpointConfig": endpoint_config}
        if tags:
            kwargs["Tags"] = {"Items": [{"Key": k, "Value": v} for k, v in sorted(tags.items())]}
        return self.client.create_vpc_origin(**kwargs)

    def get_vpc_origin(self, vpc_origin_id: str) -> dict[str, Any] | None:
        """Get a VPC origin and its ETag. Returns None on an empty response."""
        output = self.client.get_vpc_origin(Id=vpc_origin_id)
        if not output or not output.get("VpcOrigin"):
            return None
        return output

    def update_vpc_origin(
        self, vpc_origin_id: str, endpoint_config: dict[str, Any], etag: str
    ) -> dict[str, Any]:
        """Update a VPC origin guarded by its ETag."""
        return self.client.update_vpc_origin(
            Id=vpc_origin_id,
            IfMatch=etag,
            VpcOriginEndpointConfig=endpoint_config,
        )

    def delete_vpc_origin(self, vpc_origin_id: str, etag: str) -> dict[str, Any]:
        """Delete a VPC origin guarded by its ETag."""
        return self.client.delete_vpc_origin(Id=vpc_origin_id, IfMatch=etag)

    def list_tags(self, arn: str) -> dict[str, str]:
        output = self.client.list_tags_for_resource(Resource=arn)
        items = output.get("Tags", {}).get("Items", [])
        return {t["Key"]: t.get("Value", "") for t in items}

    def set_tags(self, arn: str, desired: dict[str, str], current: dict[str, str]) -> None:
        """Reconcile resource tags: add/overwrite desired, remove the rest."""
        removed = sorted(set(current) - set(desired))
        if removed:
            self.client.untag_resource(Resource=arn, TagKeys={"Items": removed})
        changed = {k: v for k, v in desired.items() if current.get(k) != v}
        if changed:
            self.client.tag_resource(
                Resource=arn,
                Tags={"Items": [{"Key": k, "Value": v} for k, v in sorted(changed.items())]},
            )
