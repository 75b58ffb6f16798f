"""Per-action operation timeouts."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: Any) -> Any:
    """Parse ``"15m"``, ``"1h30m"``, ``"45s"`` or a number of seconds.

    Anything else is handed to pydantic's own ``timedelta`` validation.
    """
    if isinstance(value, bool):
        raise ValueError("duration must not be a boolean")
    if isinstance(value, int | float):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        return value

    text = value.strip()
    if not text or _DURATION_PART.sub("", text):
        # Not Go-style; let pydantic try ISO 8601 and friends.
        return value
    seconds = sum(
        float(num) * _UNIT_SECONDS[unit] for num, unit in _DURATION_PART.findall(text)
    )
    return timedelta(seconds=seconds)


Duration = Annotated[timedelta, BeforeValidator(parse_duration)]


class Timeouts(BaseModel):
    """How long create/update/delete may wait for the resource to settle.

    Unset values fall back to the resource type's default.
    """

    model_config = ConfigDict(extra="forbid")

    create: Duration | None = None
    update: Duration | None = None
    delete: Duration | None = None

    def seconds(self, action: str, default: float) -> float:
        value: timedelta | None = getattr(self, action)
        if value is None:
            return default
        if value.total_seconds() <= 0:
            raise ValueError(f"{action} timeout must be positive")
        return value.total_seconds()
