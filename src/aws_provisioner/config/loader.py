"""Reading ``aws-provisioner.yaml`` into a validated ``Config``."""

from __future__ import annotations

import logging
import os
from collections import ChainMap, defaultdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML

from aws_provisioner.config.schema import Config

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from aws_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)

# Provider field -> environment variable. boto3 reads region/profile itself
# under the same names.
PROVIDER_ENV: dict[str, str] = {
    "region": "AWS_REGION",
    "profile": "AWS_PROFILE",
    "stack": "AWSP_STACK",
    "endpoint_url": "AWSP_ENDPOINT_URL",
    "poll_interval": "AWSP_POLL_INTERVAL",
    "max_attempts": "AWSP_MAX_ATTEMPTS",
}


class ConfigError(Exception):
    pass


def _set(values: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _resolve_provider(raw_provider: Mapping[str, Any] | None, config_dir: Path) -> dict[str, Any]:
    """Provider settings from the YAML, the environment and ``<config_dir>/.env``.

    The first source that sets a field wins, in that order.
    """
    dotenv_file = config_dir / ".env"
    from_dotenv = dotenv_values(dotenv_file, encoding="utf-8-sig") if dotenv_file.is_file() else {}
    env = ChainMap(_set(os.environ), _set(from_dotenv))
    yaml_values = _set(raw_provider or {})

    resolved: dict[str, Any] = {}
    for field, variable in PROVIDER_ENV.items():
        if field in yaml_values:
            resolved[field] = yaml_values[field]
        elif variable in env:
            resolved[field] = env[variable]
    return resolved


def _duplicate_names(resources: Iterable[Resource]) -> list[str]:
    """Names must be unique per namespace; addresses alone are not enough."""
    first_seen: defaultdict[str, dict[str, str]] = defaultdict(dict)
    errors = []
    for resource in resources:
        seen = first_seen[resource.namespace]
        if resource.name not in seen:
            seen[resource.name] = resource.address
            continue
        errors.append(
            f"Duplicate {resource.namespace} name '{resource.name}': "
            f"found in both {seen[resource.name]} and {resource.address}"
        )
    return errors


def load_config(path: Path | str) -> Config:
    """Parse and validate the YAML file at *path*.

    Raises:
        ConfigError: unreadable YAML, a non-mapping document, schema
            violations or duplicate names.
    """
    path = Path(path)
    try:
        document = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    document["provider"] = _resolve_provider(document.get("provider"), path.parent)
    try:
        config = Config.model_validate(document)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
    config.config_dir = path.parent

    if errors := _duplicate_names(config.resources):
        raise ConfigError("\n".join(errors))

    logger.info("Loaded %d resources from %s", len(config.resources), path)
    return config
