"""Mutate-then-wait lifecycle shared by handlers of asynchronous resources.

Every create/update/delete goes through the same three steps:

1. issue the mutating call;
2. wait for the resource to settle, even if the call failed, as long as an
   identity is known;
3. merge the final observed object into the stored attributes.

Both failures from steps 1 and 2 are kept on a :class:`LifecycleOutcome`, so
the mutating call's error is never hidden behind the wait's.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from aws_provisioner.engine.errors import ResourceOperationError
from aws_provisioner.engine.handlers import R, ResourceHandler
from aws_provisioner.waiter import WaitError, WaitSpec, is_not_found, status_prober, wait_until

if TYPE_CHECKING:
    from collections.abc import Callable

    from aws_provisioner.core.state import ResourceInstance
    from aws_provisioner.engine.handlers import EngineContext
    from aws_provisioner.waiter import StatusProber

logger = logging.getLogger(__name__)

LifecycleAction = Literal["create", "update", "delete"]

# Stored attributes that only exist on the resource model, never remotely.
_LOCAL_ONLY_FIELDS = {"address", "depends_on", "timeouts"}
DEFAULT_DELETE_TIMEOUT = 15 * 60.0


@dataclass
class LifecycleOutcome:
    """Result of one mutate-then-wait cycle."""

    action: LifecycleAction
    resource_kind: str
    identity: str | None = None
    result: Any = None
    final: Any = None
    mutation_error: BaseException | None = None
    wait_error: WaitError | None = None

    @property
    def ok(self) -> bool:
        return self.mutation_error is None and self.wait_error is None

    def raise_for_error(self) -> None:
        """Raise ``ResourceOperationError`` for the first failure, if any."""
        if self.mutation_error is not None:
            raise ResourceOperationError(
                action=self.action,
                resource_kind=self.resource_kind,
                identity=self.identity,
                cause=self.mutation_error,
                wait_error=self.wait_error,
            ) from self.mutation_error
        if self.wait_error is not None:
            raise ResourceOperationError(
                action=self.action,
                resource_kind=self.resource_kind,
                identity=self.identity,
                cause=self.wait_error,
            ) from self.wait_error


@dataclass(frozen=True)
class WaitStates:
    """Pending and target statuses for one lifecycle action."""

    pending: frozenset[str] | str = frozenset()
    target: frozenset[str] | str = frozenset()


class WaitingResourceHandler(ResourceHandler[R]):
    """Handler base for resources that settle asynchronously.

    Subclasses describe how to read one object (:meth:`read_remote`), how to
    extract its status (:meth:`status_of`) and which attributes the remote
    side computes (:meth:`computed_attrs`). The CRUD methods build on
    :meth:`run_lifecycle`.
    """

    resource_kind: ClassVar[str]
    wait_states: ClassVar[dict[LifecycleAction, WaitStates]]
    # Reads right after a create may not see the new object yet.
    not_found_checks: ClassVar[int] = 1
    poll_jitter: ClassVar[float] = 0.1

    # -- subclass hooks ------------------------------------------------

    def read_remote(self, ctx: EngineContext, identity: str) -> Any | None:
        """Read the remote object once. Return None if it does not exist."""
        raise NotImplementedError

    def status_of(self, obj: Any) -> str | None:
        raise NotImplementedError

    def computed_attrs(self, ctx: EngineContext, obj: Any) -> dict[str, Any]:
        """Attributes owned by the remote side (identity, ETag, ARN, status...)."""
        raise NotImplementedError

    # -- lifecycle -----------------------------------------------------

    def prober(self, ctx: EngineContext) -> StatusProber:
        return status_prober(lambda identity: self.read_remote(ctx, identity), self.status_of)

    def wait_spec(self, ctx: EngineContext, action: LifecycleAction, timeout: float) -> WaitSpec:
        states = self.wait_states[action]
        return WaitSpec(
            pending=states.pending,
            target=states.target,
            timeout=timeout,
            poll_interval=ctx.poll_interval,
            jitter=self.poll_jitter,
            not_found_checks=self.not_found_checks if action == "create" else 1,
            description=f"{self.resource_kind} {action}",
        )

    def run_lifecycle(
        self,
        ctx: EngineContext,
        *,
        action: LifecycleAction,
        identity: str | None,
        mutate: Callable[[], Any],
        timeout: float,
        identity_of: Callable[[Any], str | None] | None = None,
    ) -> LifecycleOutcome:
        """Issue *mutate* and then wait for the resource to settle.

        ``identity_of`` extracts the identity from the mutating call's result
        when it is not known up front (server-assigned ids).
        """
        outcome = LifecycleOutcome(
            action=action, resource_kind=self.resource_kind, identity=identity
        )

        try:
            outcome.result = mutate()
        except Exception as exc:
            if action == "delete" and is_not_found(exc):
                logger.debug("%s %s already gone", self.resource_kind, identity)
            else:
                logger.warning("%s %s %s failed: %s", action, self.resource_kind, identity, exc)
                outcome.mutation_error = exc
        else:
            if identity_of is not None:
                outcome.identity = identity_of(outcome.result) or outcome.identity

        if outcome.identity is None:
            # Nothing to wait on: the call failed before the remote side
            # assigned an identity.
            return outcome

        spec = self.wait_spec(ctx, action, timeout)
        logger.info(
            "Waiting for %s %s to settle (%s)", self.resource_kind, outcome.identity, action
        )
        try:
            outcome.final = wait_until(self.prober(ctx), outcome.identity, spec, cancel=ctx.cancel)
        except WaitError as exc:
            outcome.wait_error = exc
        return outcome

    # -- attribute merging ---------------------------------------------

    @staticmethod
    def desired_attrs(desired: R) -> dict[str, Any]:
        """Attributes as submitted, keyed to match the engine's planned values."""
        return desired.model_dump(exclude_none=True, exclude=_LOCAL_ONLY_FIELDS)

    def merge(
        self, ctx: EngineContext, submitted: dict[str, Any], outcome: LifecycleOutcome
    ) -> dict[str, Any]:
        """Overlay the remote-computed attributes of the final object."""
        attrs = dict(submitted)
        if outcome.final is not None:
            attrs.update(self.computed_attrs(ctx, outcome.final))
        return attrs

    # -- ResourceHandler -----------------------------------------------

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        """Full read used by refresh. Returns None if the resource is gone."""
        identity = prior.identity
        if identity is None:
            return None
        try:
            obj = self.read_remote(ctx, identity)
        except Exception as exc:
            if is_not_found(exc):
                return None
            raise
        if obj is None:
            return None
        return self.read_attrs(ctx, obj, prior)

    @staticmethod
    def delete_timeout(prior: ResourceInstance) -> float:
        """Delete timeout stored with the instance when it was last written."""
        return prior.timeouts.get("delete", DEFAULT_DELETE_TIMEOUT)

    def read_attrs(self, ctx: EngineContext, obj: Any, prior: ResourceInstance) -> dict[str, Any]:
        """Map a full remote object to stored attributes."""
        raise NotImplementedError
