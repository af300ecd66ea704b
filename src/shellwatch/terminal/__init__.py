"""Agent-facing terminal tools and bounded subprocess execution.

Provides the tmux command tool (with blocked-subcommand checks and registry
hooks), keystroke notation parsing, and the subprocess executor every tmux
call runs through.
"""

from shellwatch.terminal.interact import TmuxCommandTool
from shellwatch.terminal.keys import parse_keys
from shellwatch.terminal.result import InteractResult, ShellResult
from shellwatch.terminal.subprocess_executor import SubprocessExecutor

__all__ = [
    "InteractResult",
    "ShellResult",
    "SubprocessExecutor",
    "TmuxCommandTool",
    "parse_keys",
]
