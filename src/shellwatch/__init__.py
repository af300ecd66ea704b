"""shellwatch: tmux session tracking and liveness detection for agent shells."""

__version__ = "0.1.0"

# Public API
from shellwatch.config import Config, get_config, load_config
from shellwatch.detection import (
    Confidence,
    DetectionResult,
    LinuxProcDetector,
    ProcSignal,
    StallResult,
    detect_output_stall,
    format_timeout_message,
)
from shellwatch.errors import ShellWatchError, TmuxError, TmuxNotFoundError
from shellwatch.registry import JsonFileStore, MemoryStore, SessionRegistry
from shellwatch.runtime import ShellRuntime
from shellwatch.terminal import InteractResult, ShellResult, TmuxCommandTool
from shellwatch.tmux import TmuxClient, TmuxPathResolver, find_subcommand, tokenize_command

__all__ = [
    # Main entry point
    "ShellRuntime",
    # Config
    "Config",
    "load_config",
    "get_config",
    # tmux
    "TmuxClient",
    "TmuxCommandTool",
    "TmuxPathResolver",
    "find_subcommand",
    "tokenize_command",
    # Registry
    "JsonFileStore",
    "MemoryStore",
    "SessionRegistry",
    # Detection
    "Confidence",
    "DetectionResult",
    "LinuxProcDetector",
    "ProcSignal",
    "StallResult",
    "detect_output_stall",
    "format_timeout_message",
    # Results and errors
    "InteractResult",
    "ShellResult",
    "ShellWatchError",
    "TmuxError",
    "TmuxNotFoundError",
]
