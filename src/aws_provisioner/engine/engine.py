"""Plan/apply engine."""

from __future__ import annotations

import contextlib
import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal

from aws_provisioner import __version__
from aws_provisioner.core.state import State, compute_attributes_hash, compute_state_digest
from aws_provisioner.engine.diff import config_digest, diff_attributes, planned_attributes
from aws_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    ResourceOperationError,
    StalePlanError,
    StateStackMismatchError,
    ValidationError,
)
from aws_provisioner.engine.graph import DependencyGraph
from aws_provisioner.engine.handlers import EngineContext, PlanContext
from aws_provisioner.engine.lock import StateLock
from aws_provisioner.engine.operations import (
    BarrierOperation,
    CreateOperation,
    DeleteOperation,
    UpdateOperation,
)
from aws_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange
from aws_provisioner.resources.markers import collect_compare_strategies
from aws_provisioner.waiter import CancelToken, WaitCanceledError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]

APPLY_BARRIER = "__engine__.apply_barrier"

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from aws_provisioner.core import AWSProvider
    from aws_provisioner.engine.operations import Operation
    from aws_provisioner.engine.registry import ResourceTypeRegistry
    from aws_provisioner.resources.base import Resource

_OPERATIONS = {
    Action.CREATE: CreateOperation,
    Action.UPDATE: UpdateOperation,
    Action.DELETE: DeleteOperation,
}


def _interrupted_by_cancel(exc: BaseException) -> bool:
    if isinstance(exc, ResourceOperationError):
        return isinstance(exc.cause, WaitCanceledError)
    return isinstance(exc, WaitCanceledError)


class ProvisionEngine:
    """Computes plans against the state file and applies them to AWS.

    Every wait started by an apply shares one ``CancelToken``; state is saved
    after each completed operation so a failed or cancelled apply leaves an
    accurate record of what exists.
    """

    def __init__(
        self,
        *,
        provider: AWSProvider,
        stack: str,
        state_path: Path,
        registry: ResourceTypeRegistry,
        poll_interval: float = 5.0,
    ) -> None:
        self._provider = provider
        self._stack = stack
        self._state_path = state_path
        self._registry = registry
        self._poll_interval = poll_interval

    @property
    def stack(self) -> str:
        return self._stack

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _context(self, cancel: CancelToken | None = None) -> EngineContext:
        return EngineContext(
            provider=self._provider,
            stack=self._stack,
            cancel=cancel if cancel is not None else CancelToken(),
            poll_interval=self._poll_interval,
        )

    def _priority(self, resource_type: str) -> int:
        return self._registry.get(resource_type).model.plan_priority

    # -- state ---------------------------------------------------------------

    def _read_state(self) -> State:
        state = State.load_or_create(self._state_path, stack=self._stack)
        if state.stack != self._stack:
            raise StateStackMismatchError(self._stack, state.stack)
        logger.debug("Loaded state serial=%d with %d resources", state.serial, len(state.resources))
        return state

    def _commit(self, state: State) -> None:
        state.serial += 1
        state.save(self._state_path)

    def _sync_with_remote(self, state: State) -> bool:
        """Re-read every tracked resource; drop the ones that no longer exist."""
        ctx = self._context()
        changed = False
        for address, inst in list(state.resources.items()):
            attrs = self._registry.get(inst.resource_type).handler.read(ctx, inst)
            if attrs is None:
                logger.info("%s no longer exists remotely", address)
                del state.resources[address]
                changed = True
                continue
            digest = compute_attributes_hash(attrs)
            if attrs == inst.attributes and digest == inst.attributes_hash:
                continue
            inst.attributes = attrs
            inst.attributes_hash = digest
            inst.updated_at = datetime.now(UTC)
            changed = True
        logger.debug("Refresh finished, changed=%s", changed)
        return changed

    def refresh(self, *, persist: bool = False) -> tuple[State, State]:
        """Re-read remote state; returns the state before and after refreshing."""
        with StateLock(self._state_path):
            state = self._read_state()
            before = state.model_copy(deep=True)
            if self._sync_with_remote(state) and persist:
                self._commit(state)
            return before, state

    # -- plan ----------------------------------------------------------------

    def _index(self, resources: Sequence[Resource]) -> dict[str, Resource]:
        by_address: dict[str, Resource] = {}
        for resource in resources:
            if resource.address in by_address:
                raise DuplicateAddressError(resource.address)
            self._registry.get(resource.resource_type)
            by_address[resource.address] = resource
        return by_address

    def _validate(self, desired: dict[str, Resource], state: State) -> None:
        ctx = self._context()
        plan_ctx = PlanContext(desired, state)
        handlers = {a: self._registry.get(r.resource_type).handler for a, r in desired.items()}
        errors: list[str] = []
        for address, resource in desired.items():
            errors.extend(handlers[address].validate(ctx, resource))
        for address, resource in desired.items():
            errors.extend(handlers[address].validate_plan(ctx, resource, plan_ctx))
        errors.extend(
            f"Resource '{resource.address}' depends on unknown address '{dep}'"
            for resource in desired.values()
            for dep in resource.depends_on
            if not plan_ctx.address_exists(dep)
        )
        if errors:
            raise ValidationError(errors)

    @staticmethod
    def _dependencies(desired: dict[str, Resource]) -> dict[str, list[str]]:
        """Explicit ``depends_on`` plus the addresses named through ``Ref`` fields.

        A typed reference matches only that resource type; an untyped one
        matches every planned resource with the name.
        """
        by_name: defaultdict[str, list[str]] = defaultdict(list)
        by_typed_name: defaultdict[tuple[str, str], list[str]] = defaultdict(list)
        for address, resource in desired.items():
            by_name[resource.name].append(address)
            by_typed_name[resource.resource_type, resource.name].append(address)

        resolved: dict[str, list[str]] = {}
        for address, resource in desired.items():
            deps = list(resource.depends_on)
            for ref in resource.references():
                if ref.resource_type is None:
                    targets = by_name.get(ref.name, [])
                else:
                    targets = by_typed_name.get((ref.resource_type, ref.name), [])
                deps.extend(t for t in targets if t != address and t not in deps)
            resolved[address] = deps
        return resolved

    def _classify(self, resource: Resource, state: State, deps: list[str]) -> ResourceChange:
        planned = planned_attributes(resource)
        desired = resource.model_dump(exclude_none=True, exclude={"address"})
        desired["depends_on"] = deps
        change = ResourceChange(
            address=resource.address,
            resource_type=resource.resource_type,
            action=Action.CREATE,
            desired=desired,
            planned=planned,
        )

        stored = state.resources.get(resource.address)
        if stored is not None:
            prior = dict(stored.attributes)
            diff = diff_attributes(planned, prior, collect_compare_strategies(resource))
            change.action = Action.UPDATE if diff else Action.NOOP
            change.prior = prior
            change.diff = diff or None

        logger.debug("%s: %s", resource.address, change.action.value)
        return change

    def _upserts(self, desired: dict[str, Resource], state: State) -> list[ResourceChange]:
        deps = self._dependencies(desired)
        graph = DependencyGraph(
            desired,
            deps,
            priorities={a: r.plan_priority for a, r in desired.items()},
        )
        return [
            self._classify(desired[address], state, deps[address])
            for address in graph.topological_order()
        ]

    def _deletes(self, state: State, addresses: set[str]) -> list[ResourceChange]:
        """Delete changes for *addresses*, dependents first."""
        graph = DependencyGraph(
            addresses,
            {a: state.resources[a].dependencies for a in addresses},
            priorities={a: self._priority(state.resources[a].resource_type) for a in addresses},
        )
        return [
            ResourceChange(
                address=address,
                resource_type=state.resources[address].resource_type,
                action=Action.DELETE,
                prior=dict(state.resources[address].attributes),
            )
            for address in graph.reverse_topological_order()
        ]

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        """Diff *resources* against the (optionally refreshed) state.

        With *destroy* every tracked resource is planned for deletion and the
        configuration is only checked for unknown types and duplicates.
        """
        logger.info(
            "Planning %d resources (destroy=%s, refresh=%s)", len(resources), destroy, refresh
        )
        # A refresh may rewrite the state file; a read-only plan needs no lock.
        guard = StateLock(self._state_path) if refresh else contextlib.nullcontext()
        with guard:
            state = self._read_state()
            if refresh and self._sync_with_remote(state):
                self._commit(state)

            desired = self._index(resources)
            if destroy:
                changes = self._deletes(state, set(state.resources))
            else:
                self._validate(desired, state)
                changes = self._upserts(desired, state)
                changes += self._deletes(state, set(state.resources) - set(desired))

            metadata = PlanMetadata(
                stack=self._stack,
                created_at=datetime.now(UTC),
                destroy=destroy,
                refresh=refresh,
                state_lineage=state.lineage,
                state_serial=state.serial,
                state_digest=compute_state_digest(state),
                config_digest=config_digest([] if destroy else resources),
                engine_version=__version__,
            )
            return Plan(metadata=metadata, changes=changes)

    # -- apply ---------------------------------------------------------------

    def _state_for_apply(self, plan: Plan) -> State:
        if self._state_path.exists():
            return self._read_state()
        # A saved plan made before any state existed starts from its own lineage.
        return State(
            stack=self._stack,
            lineage=plan.metadata.state_lineage,
            serial=plan.metadata.state_serial,
        )

    @staticmethod
    def _check_fresh(plan: Plan, state: State) -> None:
        meta = plan.metadata
        if state.lineage != meta.state_lineage:
            raise StalePlanError("State lineage changed; re-run plan")
        if state.serial != meta.state_serial:
            raise StalePlanError("State serial changed; re-run plan")
        if compute_state_digest(state) != meta.state_digest:
            raise StalePlanError("State digest changed; re-run plan")

    @staticmethod
    def _declared_deps(change: ResourceChange) -> list[str]:
        if change.desired is None:
            raise ValueError(f"Missing desired config for create/update: {change.address}")
        deps = change.desired.get("depends_on") or []
        if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            raise ValueError(f"Invalid depends_on for {change.address}: expected list[str]")
        return deps

    def _operations(self, plan: Plan, state: State) -> dict[str, Operation]:
        """One operation per actionable change, wired with ordering edges.

        Creates and updates follow their dependencies. Deletes run in the
        opposite direction and only after every create/update finished.
        """
        ops: dict[str, Operation] = {}
        for change in plan.changes:
            if change.action is Action.NOOP:
                continue
            if change.address in ops:
                raise ValueError(f"Duplicate operation key in plan: {change.address}")
            ops[change.address] = _OPERATIONS[change.action](key=change.address, change=change)

        upserts = {k for k, op in ops.items() if op.change.action is not Action.DELETE}
        deletes = set(ops) - upserts

        for key in upserts:
            ops[key].deps.extend(d for d in self._declared_deps(ops[key].change) if d in upserts)

        for key in deletes:
            inst = state.resources.get(key)
            if inst is None:
                raise ValueError(f"Missing state for delete operation: {key}")
            for dep in inst.dependencies:
                if dep in deletes:
                    ops[dep].deps.append(key)

        if upserts and deletes:
            if APPLY_BARRIER in ops:
                raise ValueError(f"Barrier operation key conflicts with plan: {APPLY_BARRIER}")
            ops[APPLY_BARRIER] = BarrierOperation(key=APPLY_BARRIER, deps=sorted(upserts))
            for key in deletes:
                ops[key].deps.append(APPLY_BARRIER)
        return ops

    def _schedule(self, plan: Plan, state: State) -> list[Operation]:
        ops = self._operations(plan, state)
        priorities = {
            key: self._priority(op.change.resource_type)
            for key, op in ops.items()
            if op.change is not None
        }
        graph = DependencyGraph(ops, {k: op.deps for k, op in ops.items()}, priorities=priorities)
        return [ops[key] for key in graph.topological_order()]

    def apply(
        self,
        plan: Plan,
        *,
        progress: ProgressCallback | None = None,
        cancel: CancelToken | None = None,
    ) -> ApplyResult:
        """Apply *plan*, persisting state after every completed operation.

        Firing *cancel* (or Ctrl-C, which fires it) aborts the wait in
        progress, starts no further operation, and raises ``ApplyCanceled``
        with what was applied so far.
        """
        cancel = cancel if cancel is not None else CancelToken()
        with StateLock(self._state_path):
            state = self._state_for_apply(plan)
            if state.stack != self._stack:
                raise StateStackMismatchError(self._stack, state.stack)
            self._check_fresh(plan, state)

            ctx = self._context(cancel)
            schedule = self._schedule(plan, state)
            logger.info("Applying %d operations", len(schedule))

            applied: list[ResourceChange] = []
            current = None
            try:
                for current in schedule:
                    if cancel.cancelled:
                        raise ApplyCanceled(
                            f"Apply canceled before {current.key}", applied=applied
                        )
                    change = current.change
                    logger.debug("Running %s (%s)", current.key, type(current).__name__)
                    if progress and change is not None:
                        progress(change, "start")
                    if not current.run(ctx=ctx, state=state, registry=self._registry):
                        continue
                    assert change is not None
                    if progress:
                        progress(change, "done")
                    self._commit(state)
                    applied.append(change)
            except ApplyCanceled:
                raise
            except KeyboardInterrupt as e:
                cancel.cancel("interrupted")
                raise ApplyCanceled(applied=applied) from e
            except Exception as e:
                key = current.key if current is not None else "<none>"
                if _interrupted_by_cancel(e):
                    raise ApplyCanceled(f"Apply canceled on {key}", applied=applied) from e
                raise ApplyError(applied=applied, address=key, message=str(e)) from e

            return ApplyResult(applied=applied)
