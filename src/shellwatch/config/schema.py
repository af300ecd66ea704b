"""Configuration schema dataclasses for shellwatch.

Defines the structure of configuration at all levels (system, user, project).
All fields carry defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_SESSION_PREFIX = "cea-"
DEFAULT_STORAGE_DIR = str(Path.home() / ".code-editing-agent" / "sessions")


@dataclass
class TmuxConfig:
    """tmux invocation settings.

    Example config.yaml:
        tmux:
          binary: /opt/homebrew/bin/tmux
          command_timeout: 60
          probe_timeout: 2
    """

    binary: str | None = None  # Explicit tmux path; PATH lookup when unset
    command_timeout: float = 60.0  # Seconds for a tmux command issued by the agent
    probe_timeout: float = 2.0  # Seconds for each detection/introspection subprocess


@dataclass
class RegistryConfig:
    """Session registry settings."""

    prefix: str = DEFAULT_SESSION_PREFIX  # Only sessions with this prefix are tracked
    storage_dir: str = DEFAULT_STORAGE_DIR  # One <session-id>.json per conversation


@dataclass
class StallConfig:
    """Output stall sampling defaults."""

    sample_count: int = 3
    interval_ms: int = 500


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    tmux: TmuxConfig = field(default_factory=TmuxConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    stall: StallConfig = field(default_factory=StallConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections are kept for forward compatibility
    extra: dict[str, Any] = field(default_factory=dict)
