from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

import pytest

from aws_provisioner.core import AWSProvider, ResourceInstance
from aws_provisioner.engine.errors import ResourceOperationError
from aws_provisioner.engine.handlers import EngineContext
from aws_provisioner.engine.lifecycle import (
    DEFAULT_DELETE_TIMEOUT,
    LifecycleOutcome,
    WaitingResourceHandler,
    WaitStates,
)
from aws_provisioner.resources.base import Resource
from aws_provisioner.waiter import (
    CancelToken,
    UnexpectedStateError,
    WaitCanceledError,
    WaitTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from botocore.exceptions import ClientError


class WidgetResource(Resource):
    resource_type: ClassVar[str] = "widget"
    namespace: ClassVar[str] = "widget"
    size: int = 1


class WidgetHandler(WaitingResourceHandler[WidgetResource]):
    """Remote widgets whose status advances one step per read."""

    resource_kind = "widget"
    wait_states = {
        "create": WaitStates(pending="Building", target="Ready"),
        "update": WaitStates(pending="Building", target="Ready"),
        "delete": WaitStates(pending="Removing"),
    }

    def __init__(self, *statuses: str | None) -> None:
        self.statuses = list(statuses)
        self.reads: list[str] = []

    def read_remote(self, ctx: EngineContext, identity: str) -> dict[str, Any] | None:
        _ = ctx
        self.reads.append(identity)
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if status is None:
            return None
        return {"Id": identity, "Status": status, "Version": len(self.reads)}

    def status_of(self, obj: dict[str, Any]) -> str | None:
        return obj["Status"]

    def computed_attrs(self, ctx: EngineContext, obj: dict[str, Any]) -> dict[str, Any]:
        _ = ctx
        return {"id": obj["Id"], "status": obj["Status"], "etag": f"v{obj['Version']}"}

    def read_attrs(
        self, ctx: EngineContext, obj: dict[str, Any], prior: ResourceInstance
    ) -> dict[str, Any]:
        return {"name": prior.name, "size": 3, **self.computed_attrs(ctx, obj)}


def _ctx(cancel: CancelToken | None = None) -> EngineContext:
    return EngineContext(
        provider=AWSProvider.from_clients(),
        stack="test",
        cancel=cancel or CancelToken(),
        poll_interval=0.001,
    )


def test_successful_cycle_merges_computed_attributes() -> None:
    handler = WidgetHandler("Building", "Building", "Ready")
    ctx = _ctx()
    desired = WidgetResource(name="w1", size=2, tags={"team": "web"})

    outcome = handler.run_lifecycle(
        ctx,
        action="create",
        identity=None,
        mutate=lambda: {"Id": "wid-1"},
        identity_of=lambda out: out["Id"],
        timeout=5,
    )

    assert outcome.ok
    assert outcome.identity == "wid-1"
    assert handler.reads == ["wid-1"] * 3
    attrs = handler.merge(ctx, handler.desired_attrs(desired), outcome)
    assert attrs == {
        "name": "w1",
        "tags": {"team": "web"},
        "size": 2,
        "id": "wid-1",
        "status": "Ready",
        "etag": "v3",
    }


def test_desired_attrs_skip_local_only_fields() -> None:
    desired = WidgetResource(name="w1", timeouts={"create": "1m"}, depends_on=["widget.w0"])

    attrs = WaitingResourceHandler.desired_attrs(desired)

    assert "timeouts" not in attrs
    assert "depends_on" not in attrs
    assert "address" not in attrs


def test_failed_mutation_still_waits_and_keeps_both_errors(
    client_error: Callable[..., ClientError],
) -> None:
    handler = WidgetHandler("Building", "Broken")
    err = client_error("InvalidArgument", 400, "UpdateWidget")

    def mutate() -> None:
        raise err

    outcome = handler.run_lifecycle(
        _ctx(), action="update", identity="wid-1", mutate=mutate, timeout=5
    )

    assert outcome.mutation_error is err
    assert isinstance(outcome.wait_error, UnexpectedStateError)
    assert outcome.final is None
    assert handler.reads == ["wid-1", "wid-1"]

    with pytest.raises(ResourceOperationError) as exc_info:
        outcome.raise_for_error()
    raised = exc_info.value
    assert raised.cause is err
    assert raised.wait_error is outcome.wait_error
    assert raised.__cause__ is err
    assert str(raised).startswith("update widget (wid-1): ")
    assert "waiting afterwards also failed" in str(raised)


def test_failed_mutation_with_settled_resource_reports_mutation_error() -> None:
    handler = WidgetHandler("Ready")

    def mutate() -> None:
        raise RuntimeError("boom")

    outcome = handler.run_lifecycle(
        _ctx(), action="update", identity="wid-1", mutate=mutate, timeout=5
    )

    assert outcome.wait_error is None
    assert outcome.final == {"Id": "wid-1", "Status": "Ready", "Version": 1}
    with pytest.raises(ResourceOperationError, match="update widget \\(wid-1\\): boom"):
        outcome.raise_for_error()


def test_failed_create_without_identity_skips_the_wait() -> None:
    handler = WidgetHandler("Ready")

    def mutate() -> None:
        raise RuntimeError("quota exceeded")

    outcome = handler.run_lifecycle(
        _ctx(),
        action="create",
        identity=None,
        mutate=mutate,
        identity_of=lambda out: out["Id"],
        timeout=5,
    )

    assert outcome.identity is None
    assert handler.reads == []
    with pytest.raises(ResourceOperationError, match="^create widget: quota exceeded$"):
        outcome.raise_for_error()


def test_wait_timeout_is_the_cause_when_mutation_succeeded() -> None:
    handler = WidgetHandler("Building")

    outcome = handler.run_lifecycle(
        _ctx(), action="create", identity="wid-1", mutate=lambda: None, timeout=0.05
    )

    assert outcome.mutation_error is None
    assert isinstance(outcome.wait_error, WaitTimeoutError)
    with pytest.raises(ResourceOperationError) as exc_info:
        outcome.raise_for_error()
    assert exc_info.value.cause is outcome.wait_error
    assert exc_info.value.wait_error is None


def test_delete_waits_for_disappearance() -> None:
    handler = WidgetHandler("Removing", "Removing", None)

    outcome = handler.run_lifecycle(
        _ctx(), action="delete", identity="wid-1", mutate=lambda: None, timeout=5
    )

    assert outcome.ok
    assert outcome.final is None
    assert len(handler.reads) == 3


def test_delete_of_missing_resource_is_not_an_error(
    client_error: Callable[..., ClientError],
) -> None:
    handler = WidgetHandler(None)

    def mutate() -> None:
        raise client_error("EntityNotFound", 404, "DeleteWidget")

    outcome = handler.run_lifecycle(
        _ctx(), action="delete", identity="wid-1", mutate=mutate, timeout=5
    )

    assert outcome.ok


def test_cancelled_context_aborts_the_wait() -> None:
    handler = WidgetHandler("Building")
    cancel = CancelToken()
    cancel.cancel("operator abort")

    outcome = handler.run_lifecycle(
        _ctx(cancel), action="create", identity="wid-1", mutate=lambda: None, timeout=5
    )

    assert isinstance(outcome.wait_error, WaitCanceledError)
    assert handler.reads == []


def test_wait_spec_per_action() -> None:
    handler = WidgetHandler("Ready")
    handler.not_found_checks = 4
    ctx = _ctx()

    create = handler.wait_spec(ctx, "create", 60)
    delete = handler.wait_spec(ctx, "delete", 30)

    assert create.target == frozenset({"Ready"})
    assert create.not_found_checks == 4
    assert create.poll_interval == 0.001
    assert delete.expects_disappearance
    assert delete.not_found_checks == 1
    assert delete.timeout == 30


def test_outcome_ok_without_errors() -> None:
    outcome = LifecycleOutcome(action="create", resource_kind="widget", identity="wid-1")
    assert outcome.ok
    outcome.raise_for_error()


class TestRead:
    def _prior(self, **attrs: Any) -> ResourceInstance:
        return ResourceInstance(
            address="widget.w1", resource_type="widget", name="w1", attributes=attrs
        )

    def test_read_maps_remote_object(self) -> None:
        handler = WidgetHandler("Ready")

        attrs = handler.read(_ctx(), self._prior(id="wid-1"))

        assert attrs == {"name": "w1", "size": 3, "id": "wid-1", "status": "Ready", "etag": "v1"}

    def test_read_without_identity_or_object_returns_none(self) -> None:
        handler = WidgetHandler(None)

        assert handler.read(_ctx(), self._prior()) is None
        assert handler.read(_ctx(), self._prior(id="wid-1")) is None

    def test_read_not_found_error_returns_none(
        self, client_error: Callable[..., ClientError]
    ) -> None:
        handler = WidgetHandler("Ready")
        gone = client_error("EntityNotFound", 404)

        def read_remote(ctx: EngineContext, identity: str) -> None:
            raise gone

        handler.read_remote = read_remote  # type: ignore[method-assign]

        assert handler.read(_ctx(), self._prior(id="wid-1")) is None

    def test_read_propagates_other_errors(self, client_error: Callable[..., ClientError]) -> None:
        handler = WidgetHandler("Ready")
        denied = client_error("AccessDenied", 403)

        def read_remote(ctx: EngineContext, identity: str) -> None:
            raise denied

        handler.read_remote = read_remote  # type: ignore[method-assign]

        with pytest.raises(type(denied)):
            handler.read(_ctx(), self._prior(id="wid-1"))


def test_delete_timeout_from_stored_instance() -> None:
    stored = ResourceInstance(
        address="widget.w1", resource_type="widget", name="w1", timeouts={"delete": 42.0}
    )
    legacy = ResourceInstance(address="widget.w2", resource_type="widget", name="w2")

    assert WaitingResourceHandler.delete_timeout(stored) == 42.0
    assert WaitingResourceHandler.delete_timeout(legacy) == DEFAULT_DELETE_TIMEOUT
