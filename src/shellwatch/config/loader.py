"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Deep merging of system, user and project layers
- Environment variable overrides
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from shellwatch.config.paths import get_config_paths
from shellwatch.config.schema import (
    DEFAULT_SESSION_PREFIX,
    DEFAULT_STORAGE_DIR,
    Config,
    LoggingConfig,
    RegistryConfig,
    StallConfig,
    TmuxConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("shellwatch.config")

_cached_config: Config | None = None

_KNOWN_SECTIONS = {"tmux", "registry", "stall", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base.

    Nested dicts merge recursively, lists and scalars are replaced, and
    None in override never clears a value from base.
    """
    result = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def env_overrides() -> dict[str, Any]:
    """Build a config dict from SHELLWATCH_* environment variables."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("SHELLWATCH_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    storage_dir = os.environ.get("SHELLWATCH_STORAGE_DIR")
    if storage_dir:
        overrides.setdefault("registry", {})["storage_dir"] = storage_dir

    tmux_binary = os.environ.get("SHELLWATCH_TMUX")
    if tmux_binary:
        overrides.setdefault("tmux", {})["binary"] = tmux_binary

    return overrides


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    return value if isinstance(value, dict) else {}


def _stall_config(stall_data: dict[str, Any]) -> StallConfig:
    """Build StallConfig, replacing out-of-range values with the defaults."""
    defaults = StallConfig()

    sample_count = int(stall_data.get("sample_count", defaults.sample_count))
    if sample_count < 1:
        _log.warning(
            "stall.sample_count must be at least 1, got %d; using %d",
            sample_count,
            defaults.sample_count,
        )
        sample_count = defaults.sample_count

    interval_ms = int(stall_data.get("interval_ms", defaults.interval_ms))
    if interval_ms < 0:
        _log.warning(
            "stall.interval_ms must not be negative, got %d; using %d",
            interval_ms,
            defaults.interval_ms,
        )
        interval_ms = defaults.interval_ms

    return StallConfig(sample_count=sample_count, interval_ms=interval_ms)


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    tmux_data = _section(data, "tmux")
    tmux = TmuxConfig(
        binary=tmux_data.get("binary"),
        command_timeout=float(tmux_data.get("command_timeout", 60.0)),
        probe_timeout=float(tmux_data.get("probe_timeout", 2.0)),
    )

    registry_data = _section(data, "registry")
    registry = RegistryConfig(
        prefix=registry_data.get("prefix", DEFAULT_SESSION_PREFIX),
        storage_dir=os.path.expanduser(
            registry_data.get("storage_dir", DEFAULT_STORAGE_DIR)
        ),
    )

    stall = _stall_config(_section(data, "stall"))

    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_SECTIONS}

    return Config(
        tmux=tmux,
        registry=registry,
        stall=stall,
        logging=logging_config,
        extra=extra,
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($project_root/.shellwatch/config.yaml)
    3. User config
    4. System config (/etc/shellwatch/config.yaml)

    Args:
        project_root: Project directory for project-level config.
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    merged: dict[str, Any] = {}
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            merged = deep_merge(merged, config_data)

    merged = deep_merge(merged, env_overrides())
    config = dict_to_config(merged)

    # Cache only the global config (no project_root)
    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config. Useful for testing or forcing a reload."""
    global _cached_config
    _cached_config = None
