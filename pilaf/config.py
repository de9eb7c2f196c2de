"""Test configuration defaults, flag normalization and file loading."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ConfigurationError

DEFAULT_BACKEND = "mineflayer"
DEFAULT_SERVER_VERSION = "1.21.5"
DEFAULT_BRIDGE_URL = "http://localhost:3000"
DEFAULT_RCON_HOST = "localhost"
DEFAULT_RCON_PORT = 25575
DEFAULT_RCON_PASSWORD = "dragon123"
DEFAULT_TEST_PLAYER = "pilaf_tester"
DEFAULT_SETTLE_DELAY_MS = 100

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}
_DEFAULT_STRINGS = {"default", "auto", "inherit"}

# file key -> dataclass field, first match wins
_KEY_ALIASES: Dict[str, str] = {
    "server_backend": "backend",
    "mineflayer_url": "bridge_url",
    "mineflayer_timeout": "bridge_timeout",
}

_ENV_OVERRIDES: Tuple[Tuple[str, str], ...] = (
    ("PILAF_BACKEND", "backend"),
    ("MINEFLAYER_URL", "bridge_url"),
    ("RCON_HOST", "rcon_host"),
    ("RCON_PORT", "rcon_port"),
    ("RCON_PASSWORD", "rcon_password"),
    ("TEST_PLAYER", "test_player"),
)


def coerce_flag(value: Any, *, default: Optional[bool] = None) -> Tuple[Optional[bool], bool]:
    """Coerce a loosely-typed flag value into ``True``/``False``/``None``.

    ``default`` is returned when ``value`` is ``None`` or explicitly requests
    inheritance (``"default"``/``"auto"``). The boolean in the return tuple
    indicates whether the coercion succeeded.
    """

    if isinstance(value, bool):
        return value, True
    if value is None:
        return default, True
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True, True
        if text in _FALSE_STRINGS:
            return False, True
        if default is not None and text in _DEFAULT_STRINGS:
            return default, True
        return None, False
    if isinstance(value, (int, float)):
        if value == 1:
            return True, True
        if value == 0:
            return False, True
        return None, False
    return None, False


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}") from exc


def _coerce_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}") from exc


def _coerce_bool(key: str, value: Any) -> bool:
    flag, ok = coerce_flag(value, default=False)
    if not ok or flag is None:
        raise ConfigurationError(f"'{key}' must be a boolean flag, got {value!r}")
    return flag


@dataclass(frozen=True)
class TestConfiguration:
    """Connection and runtime settings for one backend configuration."""

    __test__ = False  # not a pytest test class

    backend: str = DEFAULT_BACKEND
    server_version: str = DEFAULT_SERVER_VERSION
    bridge_url: str = DEFAULT_BRIDGE_URL
    bridge_timeout: float = 10.0
    rcon_host: str = DEFAULT_RCON_HOST
    rcon_port: int = DEFAULT_RCON_PORT
    rcon_password: str = DEFAULT_RCON_PASSWORD
    rcon_timeout: float = 5.0
    test_player: str = DEFAULT_TEST_PLAYER
    skip_health_checks: bool = False
    health_check_timeout: float = 5.0
    settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS
    verbose: bool = False
    name: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None, *, name: Optional[str] = None) -> "TestConfiguration":
        """Build a configuration from a loosely-typed mapping (YAML/JSON root)."""

        values: Dict[str, Any] = {}
        known = {f.name: f for f in fields(cls)}
        items = sorted((data or {}).items(), key=lambda kv: str(kv[0]) in _KEY_ALIASES)
        for raw_key, raw_value in items:
            key = _KEY_ALIASES.get(str(raw_key), str(raw_key))
            if key not in known or raw_value is None:
                continue
            if key in values:
                # canonical key already seen; aliases never override it
                continue
            values[key] = raw_value
        if name is not None and "name" not in values:
            values["name"] = name
        return cls(**_coerce_fields(values))

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> "TestConfiguration":
        env = os.environ if environ is None else environ
        updates: Dict[str, Any] = {}
        for env_key, field_name in _ENV_OVERRIDES:
            value = env.get(env_key)
            if value:
                updates[field_name] = value
        if not updates:
            return self
        return replace(self, **_coerce_fields(updates))

    @property
    def config_id(self) -> str:
        return self.name or self.backend

    def is_containerized(self) -> bool:
        return self.backend.strip().lower() in {"docker", "docker-server"}

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["rcon_password"] = "***"
        return data


def _coerce_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    coerced: Dict[str, Any] = {}
    for key, value in values.items():
        if key in {"rcon_port", "settle_delay_ms"}:
            coerced[key] = _coerce_int(key, value)
        elif key in {"bridge_timeout", "rcon_timeout", "health_check_timeout"}:
            coerced[key] = _coerce_float(key, value)
        elif key in {"skip_health_checks", "verbose"}:
            coerced[key] = _coerce_bool(key, value)
        else:
            coerced[key] = str(value)
    return coerced


def read_mapping_file(path: str | Path) -> Dict[str, Any]:
    """Read a YAML or JSON file whose root must be a mapping."""

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"file not found: {p}") from exc

    try:
        if p.suffix.lower() in {".yaml", ".yml"}:
            data: Any = yaml.safe_load(text) or {}
        else:
            data = json.loads(text or "{}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"could not parse {p}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"{p}: root must be a YAML/JSON object (mapping).")
    return data


def load_configuration(
    path: str | Path,
    *,
    environ: Mapping[str, str] | None = None,
) -> TestConfiguration:
    """Load a configuration file and apply environment overrides."""

    p = Path(path)
    data = read_mapping_file(p)
    config = TestConfiguration.from_mapping(data, name=p.stem)
    return config.with_env_overrides(environ)
