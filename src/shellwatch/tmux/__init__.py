"""tmux command parsing, binary resolution and invocation."""

from shellwatch.tmux.client import TmuxClient, TmuxError
from shellwatch.tmux.commands import (
    BLOCKED_SUBCOMMANDS,
    canonical_subcommand,
    extract_session_name,
    find_subcommand,
    is_blocked_subcommand,
    normalize_session_name,
    tokenize_command,
)
from shellwatch.tmux.resolver import TmuxPathResolver

__all__ = [
    "BLOCKED_SUBCOMMANDS",
    "TmuxClient",
    "TmuxError",
    "TmuxPathResolver",
    "canonical_subcommand",
    "extract_session_name",
    "find_subcommand",
    "is_blocked_subcommand",
    "normalize_session_name",
    "tokenize_command",
]
