"""
cachegroup-schema: engine config loader.

File: src/cachegroup_schema/config/loader.py

Purpose
- Produce the effective engine config from four layers, later layers winning:
  built-in defaults, ``cachegroup.toml``, ``CACHEGROUP_*`` variables, CLI flags.

Notes
- The file layer is validated on its own first, so a broken file is reported
  even when an override would hide the bad value.
- ``observability.log_dir`` is resolved against the directory of the config
  file; an empty value keeps logging on stderr only.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final, Literal

from cachegroup_schema.config.schema import (
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
)
from cachegroup_schema.constants import CONFIG_FILE_NAME, ENV_PREFIX

DEFAULT_CONFIG_FILE: Final[str] = CONFIG_FILE_NAME

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})

EnvKind = Literal["str", "int", "bool"]

# Every setting that may be overridden from the environment.
_ENV_FIELDS: Final[tuple[tuple[str, str, EnvKind], ...]] = (
    ("meta", "schema_version", "int"),
    ("engine", "target_state_version", "int"),
    ("engine", "apply_defaults", "bool"),
    ("observability", "log_level", "str"),
    ("observability", "log_format", "str"),
    ("observability", "log_dir", "str"),
    ("observability", "redact_secrets", "bool"),
)


class ConfigLoadError(ValueError):
    """Raised when a config file cannot be read or an override cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the effective engine config.

    ``config_path`` defaults to ``./cachegroup.toml``, which may be absent; an
    explicit path must exist. ``cli_overrides`` maps ``section.key`` to a value.
    """

    path = _config_file(config_path)
    layered = merge_config(default_config(), _read_toml(path, required=config_path is not None))
    assert_valid_config(layered)

    layered = merge_config(layered, env_overrides(os.environ if environ is None else environ))
    layered = merge_config(layered, _cli_layer(cli_overrides or {}))
    config = assert_valid_config(layered)

    observability = config["observability"]
    observability["log_dir"] = resolve_log_dir(observability["log_dir"], path.parent)
    return config


def env_var_name(section: str, key: str) -> str:
    return f"{ENV_PREFIX}{section}_{key}".upper()


def env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    """Collect the ``CACHEGROUP_<SECTION>_<KEY>`` variables present in ``environ``."""

    layer: dict[str, dict[str, object]] = {}
    for section, key, kind in _ENV_FIELDS:
        name = env_var_name(section, key)
        raw = environ.get(name)
        if raw is None:
            continue
        layer.setdefault(section, {})[key] = _coerce(name, raw.strip(), kind)
    return layer


def resolve_log_dir(raw: str, base_dir: Path) -> str:
    if not raw:
        return ""
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return candidate.resolve().as_posix()


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Canonical JSON of the redacted config; equal configs dump to equal text."""

    return json.dumps(
        redact_config(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _config_file(config_path: str | Path | None) -> Path:
    if config_path is None:
        return Path.cwd().joinpath(DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.is_file():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _coerce(name: str, raw: str, kind: EnvKind) -> object:
    if kind == "int":
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigLoadError(f"{name} must be an integer, got {raw!r}") from exc
    if kind == "bool":
        lowered = raw.lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise ConfigLoadError(f"{name} must be a boolean (true/false/1/0/yes/no/on/off)")
    return raw


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for dotted in sorted(overrides):
        section, _, key = dotted.partition(".")
        if not section or not key or "." in key:
            raise ConfigLoadError(f"invalid CLI override key {dotted!r}; expected 'section.key'")
        layer.setdefault(section, {})[key] = overrides[dotted]
    return layer


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_overrides",
    "env_var_name",
    "load_config",
    "resolve_log_dir",
]
