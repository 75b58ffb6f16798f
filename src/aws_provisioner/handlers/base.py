"""What the engine handlers expect from a per-service API wrapper."""

from __future__ import annotations

from typing import Any, Protocol


class ServiceApi(Protocol):
    """One boto3 client behind plain-dict calls.

    Wrappers never retry or wait; that is the waiter's job.
    """

    client: Any

    def list_tags(self, arn: str) -> dict[str, str]: ...

    def set_tags(self, arn: str, desired: dict[str, str], current: dict[str, str]) -> None:
        """Make the tags on *arn* equal to *desired*, given they are *current* now."""
        ...


def sync_tags(
    api: ServiceApi, arn: str | None, desired: dict[str, str], current: dict[str, str]
) -> bool:
    """Push *desired* tags when they differ; False when there was nothing to do."""
    if not arn or desired == current:
        return False
    api.set_tags(arn, desired, current)
    return True
