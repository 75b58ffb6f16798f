"""The state file: what this tool created, as last confirmed against AWS."""

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def _digest(obj: Any) -> str:
    # AWS hands back datetimes; ``str`` keeps them hashable and stable.
    payload = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def compute_attributes_hash(attrs: Mapping[str, Any]) -> str:
    return _digest(dict(attrs))


class ResourceInstance(BaseModel):
    """One tracked resource.

    ``attributes`` hold the last confirmed values, including the remote
    identity under ``id`` and, for APIs with optimistic locking, the
    ``etag``. ``timeouts`` are the per-action wait limits in seconds that
    were in effect when the resource was last written; a destroy uses them
    after the resource has left the config.
    """

    address: str
    resource_type: str
    name: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    attributes_hash: str = ""
    dependencies: list[str] = Field(default_factory=list)
    timeouts: dict[str, float] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def identity(self) -> str | None:
        return self.attributes.get("id")

    @property
    def etag(self) -> str | None:
        return self.attributes.get("etag")


class State(BaseModel):
    """All tracked resources of one stack.

    ``serial`` goes up on every write and ``lineage`` never changes once
    the file exists; together with :func:`compute_state_digest` they let a
    saved plan detect that it was computed against a different state.
    """

    version: int = STATE_VERSION
    stack: str
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)

    def save(self, path: Path) -> None:
        """Write to *path* atomically, keeping the previous file as ``<path>.backup``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            Path(f"{path}.backup").write_bytes(path.read_bytes())

        body = json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(body)
                fh.flush()
                os.fsync(fh.fileno())
            tmp.replace(path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
        logger.debug("Wrote state serial=%d to %s", self.serial, path)

    @classmethod
    def load(cls, path: Path) -> "State":
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    @classmethod
    def load_or_create(cls, path: Path, stack: str) -> "State":
        if path.exists():
            return cls.load(path)
        logger.debug("No state at %s; starting empty for stack %s", path, stack)
        return cls(stack=stack)


def compute_state_digest(state: State) -> str:
    """Hash of everything in *state* that a plan depends on.

    Timestamps and stored timeouts are left out: they change on every
    write without changing what exists.
    """
    return _digest(
        {
            "version": state.version,
            "stack": state.stack,
            "lineage": state.lineage,
            "serial": state.serial,
            "resources": [
                {
                    "address": address,
                    "resource_type": inst.resource_type,
                    "name": inst.name,
                    "attributes_hash": inst.attributes_hash,
                    "dependencies": sorted(inst.dependencies),
                }
                for address, inst in sorted(state.resources.items())
            ],
        }
    )
