"""Plan and apply engine for AWS resources."""

from aws_provisioner.engine.engine import ProvisionEngine
from aws_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    EngineError,
    ResourceOperationError,
    StalePlanError,
    StateLockError,
    StateStackMismatchError,
    UnknownResourceTypeError,
    ValidationError,
)
from aws_provisioner.engine.handlers import EngineContext, PlanContext, ResourceHandler
from aws_provisioner.engine.lifecycle import LifecycleOutcome, WaitingResourceHandler, WaitStates
from aws_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
from aws_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "DependencyCycleError",
    "DuplicateAddressError",
    "EngineContext",
    "EngineError",
    "LifecycleOutcome",
    "Plan",
    "PlanContext",
    "PlanMetadata",
    "ProvisionEngine",
    "ResourceChange",
    "ResourceHandler",
    "ResourceOperationError",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateLockError",
    "StateStackMismatchError",
    "UnknownResourceTypeError",
    "ValidationError",
    "WaitStates",
    "WaitingResourceHandler",
]
