"""
Configuration for the gate link.

Sources, lowest to highest priority:
1. Defaults on GateConfig
2. A YAML file (flat mapping of field names)
3. Environment variables (GATELINK_*, API_KEY / OPENAI_API_KEY)
4. Explicit overrides (CLI flags)
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import yaml

from .session import DEFAULT_BAUD

logger = logging.getLogger(__name__)


@dataclass
class GateConfig:
    """Settings for one gate link instance."""

    title: str = "SNACKTIME-PET"
    port: str = "auto"
    baud: int = DEFAULT_BAUD
    default_limit: int = 5
    default_lock_minutes: int = 2
    visit_capacity: int = 20
    log_capacity: int = 50
    read_timeout: float = 0.1
    insight_model: str = "gpt-4o-mini"
    insight_base_url: Optional[str] = None
    api_key: Optional[str] = None
    events_path: Optional[str] = None
    log_level: str = "WARNING"


_ENV_MAP = {
    "GATELINK_TITLE": "title",
    "GATELINK_PORT": "port",
    "GATELINK_BAUD": "baud",
    "GATELINK_DEFAULT_VISIT_LIMIT": "default_limit",
    "GATELINK_DEFAULT_LOCK_TIME": "default_lock_minutes",
    "GATELINK_INSIGHT_MODEL": "insight_model",
    "GATELINK_INSIGHT_BASE_URL": "insight_base_url",
    "GATELINK_EVENTS_PATH": "events_path",
    "GATELINK_LOG_LEVEL": "log_level",
    "OPENAI_API_KEY": "api_key",
    "API_KEY": "api_key",
}

_FIELD_TYPES = {f.name: f.type for f in dataclasses.fields(GateConfig)}


def _coerce(name: str, value: Any, fallback: Any) -> Any:
    """Convert a raw value to the field's type; fall back on bad input."""
    if value is None:
        return fallback
    kind = _FIELD_TYPES[name]
    try:
        if kind == "int":
            return int(value)
        if kind == "float":
            return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid value %r for %s", value, name)
        return fallback
    return str(value)


def _apply(config: GateConfig, values: Mapping[str, Any]) -> GateConfig:
    changes = {}
    for name, value in values.items():
        if name not in _FIELD_TYPES:
            raise ValueError(f"Unknown config key: {name}")
        changes[name] = _coerce(name, value, getattr(config, name))
    return dataclasses.replace(config, **changes)


def load_yaml(path: str) -> dict:
    """Read a YAML config file into a flat mapping."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file (expected mapping): {path}")
    return data


def from_environ(environ: Mapping[str, str]) -> dict:
    values: dict = {}
    for env_name, field in _ENV_MAP.items():
        raw = environ.get(env_name)
        # API_KEY and OPENAI_API_KEY both map to api_key; the first one set wins.
        if raw and field not in values:
            values[field] = raw
    return values


def load_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> GateConfig:
    """Build a GateConfig from defaults, file, environment and overrides."""
    config = GateConfig()
    if path:
        config = _apply(config, load_yaml(path))
    config = _apply(config, from_environ(os.environ if environ is None else environ))
    config = _apply(config, {k: v for k, v in overrides.items() if v is not None})

    if config.default_limit < 1:
        config.default_limit = 1
    if config.default_lock_minutes < 0:
        config.default_lock_minutes = 0
    return config
