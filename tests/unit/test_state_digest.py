from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from aws_provisioner.core.state import (
    ResourceInstance,
    State,
    compute_attributes_hash,
    compute_state_digest,
)

if TYPE_CHECKING:
    from pathlib import Path

ADDRESS = "aws_cloudfront_vpc_origin.web"


def _state(**inst_kwargs: object) -> State:
    attrs = {"id": "vo-1", "etag": "E1", "status": "Deployed"}
    inst = ResourceInstance(
        address=ADDRESS,
        resource_type="aws_cloudfront_vpc_origin",
        name="web",
        attributes=attrs,
        attributes_hash=compute_attributes_hash(attrs),
        dependencies=["aws_codedeploy_app.web"],
        **inst_kwargs,  # type: ignore[arg-type]
    )
    return State(stack="prod", resources={ADDRESS: inst})


def test_digest_ignores_timestamps_and_timeouts() -> None:
    t0 = datetime(2026, 1, 1, tzinfo=UTC)
    state = _state(created_at=t0, updated_at=t0)
    d0 = compute_state_digest(state)

    inst = state.resources[ADDRESS]
    inst.created_at = inst.updated_at = t0 + timedelta(days=1)
    inst.timeouts = {"delete": 60.0}

    assert compute_state_digest(state) == d0


def test_digest_tracks_serial_lineage_and_stack() -> None:
    state = _state()
    d0 = compute_state_digest(state)

    state.serial += 1
    assert compute_state_digest(state) != d0

    state.serial = 0
    state.lineage = "different"
    assert compute_state_digest(state) != d0

    other = _state()
    other.lineage = state.lineage = "same"
    other.stack = "staging"
    assert compute_state_digest(other) != compute_state_digest(state)


def test_digest_tracks_attribute_hash() -> None:
    state = _state()
    d0 = compute_state_digest(state)

    state.resources[ADDRESS].attributes_hash = compute_attributes_hash({"etag": "E2"})

    assert compute_state_digest(state) != d0


def test_attribute_hash_accepts_datetimes() -> None:
    attrs = {"created_time": datetime(2026, 1, 1, tzinfo=UTC)}
    assert compute_attributes_hash(attrs) == compute_attributes_hash(dict(attrs))


def test_save_and_load_roundtrip_keeps_timeouts(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "state.json"
    state = _state(timeouts={"create": 60.0, "delete": 120.0})

    state.save(path)
    loaded = State.load(path)

    assert loaded.stack == "prod"
    assert loaded.resources[ADDRESS].timeouts == {"create": 60.0, "delete": 120.0}
    assert loaded.resources[ADDRESS].identity == "vo-1"
    assert loaded.resources[ADDRESS].etag == "E1"
    assert compute_state_digest(loaded) == compute_state_digest(state)


def test_save_keeps_backup_of_previous_state(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    State(stack="prod", serial=1).save(path)
    State(stack="prod", serial=2).save(path)

    backup = State.load(tmp_path / "state.json.backup")
    assert backup.serial == 1
    assert State.load(path).serial == 2
