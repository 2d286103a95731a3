"""
Layered settings loader.

Sources, applied in order (last one wins per key):
1. configuration/base.yaml
2. configuration/{APP_ENVIRONMENT}.yaml (local | production, default local)
3. Environment variables APP_<SECTION>__<KEY>, e.g. APP_DATABASE__PASSWORD
"""

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mailing_list.settings.models import Settings

ENV_PREFIX = "APP_"
ENV_SEPARATOR = "__"


class Environment(Enum):
    LOCAL = "local"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, raw: str) -> "Environment":
        value = raw.strip().lower()
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"{raw} is not a supported environment. Use either `local` or `production`."
            ) from None


def read_yaml(path: Path) -> dict[str, Any]:
    """
    Read one YAML mapping.
    Raises FileNotFoundError if file missing.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML syntax in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Turn APP_SECTION__KEY variables into a nested mapping."""
    overrides: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX) or ENV_SEPARATOR not in name:
            continue
        path = name[len(ENV_PREFIX) :].lower().split(ENV_SEPARATOR)
        node = overrides
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
    return overrides


def merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two mappings; values from ``override`` win."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(
    config_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load and validate settings.
    Raises FileNotFoundError if a configuration file is missing.
    Raises ValueError if the environment name, YAML or schema is invalid.
    """
    env = os.environ if environ is None else environ
    directory = config_dir or Path.cwd() / "configuration"
    environment = Environment.parse(env.get("APP_ENVIRONMENT", Environment.LOCAL.value))

    sources = [
        read_yaml(directory / "base.yaml"),
        read_yaml(directory / f"{environment.value}.yaml"),
        env_overrides(env),
    ]

    data: dict[str, Any] = {}
    for source in sources:
        data = merge(data, source)

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Settings validation failed:\n{e}") from e
