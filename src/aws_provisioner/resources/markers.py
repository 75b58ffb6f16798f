"""``Annotated`` markers that describe how resource fields relate to AWS.

``Ref``
    The field names another resource; the engine orders that one first.
``ApiField``
    The field lives at a dot-separated path of the AWS request/response.
``Compare``
    How planning compares the configured value with the stored one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypeAlias, TypeVar

from pydantic_core import PydanticUndefined

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pydantic.fields import FieldInfo

CompareStrategy: TypeAlias = Literal["partial", "exact", "set"]

_Marker = TypeVar("_Marker")


@dataclass(frozen=True, slots=True)
class Ref:
    resource_type: str | None = None


@dataclass(frozen=True, slots=True)
class ApiField:
    path: str


@dataclass(frozen=True, slots=True)
class Compare:
    strategy: CompareStrategy


@dataclass(frozen=True, slots=True)
class ResourceRef:
    """A referenced resource name; ``resource_type=None`` matches any type."""

    name: str
    resource_type: str | None = None


def _marked(model: Any, kind: type[_Marker]) -> Iterator[tuple[str, FieldInfo, _Marker]]:
    """Fields of *model* (class or instance) annotated with a *kind* marker."""
    cls = model if isinstance(model, type) else type(model)
    for name, info in cls.model_fields.items():
        for meta in info.metadata:
            if isinstance(meta, kind):
                yield name, info, meta
                break


def _default_of(info: FieldInfo) -> Any:
    if info.default is not PydanticUndefined:
        return info.default
    if info.default_factory is not None:
        return info.default_factory()  # type: ignore[call-arg]
    return None


def _lookup(raw: Any, path: str, default: Any) -> Any:
    for key in path.split("."):
        if not isinstance(raw, dict) or key not in raw:
            return default
        raw = raw[key]
    return raw


def collect_ref_specs(resource: Any) -> list[ResourceRef]:
    refs = []
    for name, _, marker in _marked(resource, Ref):
        value = getattr(resource, name)
        names = [] if value is None else value if isinstance(value, list) else [value]
        refs += [ResourceRef(name=n, resource_type=marker.resource_type) for n in names]
    return refs


def collect_compare_strategies(resource: Any) -> dict[str, CompareStrategy]:
    return {name: marker.strategy for name, _, marker in _marked(resource, Compare)}


def extract_api_attrs(model_cls: type, raw: dict[str, Any]) -> dict[str, Any]:
    """Flatten an AWS response into field values; absent keys give the field default."""
    return {
        name: _lookup(raw, marker.path, _default_of(info))
        for name, info, marker in _marked(model_cls, ApiField)
    }


def build_api_params(model: Any) -> dict[str, Any]:
    """Nest the ``ApiField`` values of *model* into request shape, skipping ``None``."""
    params: dict[str, Any] = {}
    for name, _, marker in _marked(model, ApiField):
        value = getattr(model, name)
        if value is None:
            continue
        *parents, leaf = marker.path.split(".")
        target = params
        for key in parents:
            target = target.setdefault(key, {})
        target[leaf] = value
    return params
