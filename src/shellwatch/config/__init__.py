"""Configuration management for shellwatch.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/shellwatch/)
- User-level config (~/.config/shellwatch/ or ~/.shellwatch/)
- Project-level config ($project_root/.shellwatch/)
- Environment variable overrides (highest priority)

Example usage:
    from shellwatch.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.registry.prefix)
    print(config.tmux.probe_timeout)
"""

from shellwatch.config.loader import (
    deep_merge,
    get_config,
    load_config,
    reset_config,
)
from shellwatch.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from shellwatch.config.schema import (
    Config,
    LoggingConfig,
    RegistryConfig,
    StallConfig,
    TmuxConfig,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "deep_merge",
    "LoggingConfig",
    "RegistryConfig",
    "StallConfig",
    "TmuxConfig",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
