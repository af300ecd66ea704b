"""Tokenizing and classifying raw tmux command strings.

The agent passes tmux arguments as one string (without the ``tmux``
prefix). The same tokenizer feeds both the blocked-subcommand check and
session-name extraction, so the two always agree on what a command means.
"""

from __future__ import annotations

from collections.abc import Sequence

# Subcommands that capture or pipe pane/buffer content. Reading the screen
# goes through the command-execution entry point instead.
BLOCKED_SUBCOMMANDS = frozenset(
    {
        "capture-pane",
        "capturep",
        "save-buffer",
        "saveb",
        "show-buffer",
        "showb",
        "pipe-pane",
        "pipep",
    }
)

# Global tmux options that consume the following token as their value
GLOBAL_OPTIONS_WITH_ARGS = frozenset({"-L", "-S", "-f", "-c", "-T"})

NEW_SESSION = "new-session"
KILL_SESSION = "kill-session"
KILL_SERVER = "kill-server"

_ALIASES = {
    "new": NEW_SESSION,
    "kill-ses": KILL_SESSION,
}


def tokenize_command(cmd: str) -> list[str]:
    """Split a tmux argument string into tokens.

    Single and double quotes group whitespace, a backslash escapes the next
    character and is dropped, and an unterminated quote simply runs to the
    end of the input.

    >>> tokenize_command("send-keys -t cea-a 'echo hi' Enter")
    ['send-keys', '-t', 'cea-a', 'echo hi', 'Enter']
    """
    tokens: list[str] = []
    current: list[str] = []
    quote_char = ""
    escaped = False

    for char in cmd:
        if escaped:
            current.append(char)
            escaped = False
            continue

        if char == "\\":
            escaped = True
            continue

        if quote_char:
            if char == quote_char:
                quote_char = ""
            else:
                current.append(char)
        elif char in ("'", '"'):
            quote_char = char
        elif char.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))
    return tokens


def find_subcommand(tokens: Sequence[str]) -> str:
    """Return the effective tmux subcommand, skipping global options.

    Returns an empty string when no subcommand can be determined; callers
    treat that as "unknown".
    """
    i = 0
    while i < len(tokens):
        token = tokens[i]

        if token == "--":
            return tokens[i + 1] if i + 1 < len(tokens) else ""

        if token in GLOBAL_OPTIONS_WITH_ARGS:
            i += 2
            continue

        if token.startswith("-"):
            i += 1
            continue

        return token

    return ""


def canonical_subcommand(subcommand: str) -> str:
    """Map tmux aliases to the full subcommand name."""
    return _ALIASES.get(subcommand, subcommand)


def is_blocked_subcommand(subcommand: str) -> bool:
    return subcommand.lower() in BLOCKED_SUBCOMMANDS


def find_flag_value(tokens: Sequence[str], flag: str) -> str | None:
    """Return the token following the first occurrence of ``flag``."""
    for i in range(len(tokens) - 1):
        if tokens[i] == flag:
            return tokens[i + 1]
    return None


def normalize_session_name(target: str) -> str:
    """Strip any window/pane suffix so tracking works per session.

    >>> normalize_session_name("cea-x:0.1")
    'cea-x'
    """
    return target.split(":", 1)[0].split(".", 1)[0]


def extract_session_name(tokens: Sequence[str], subcommand: str) -> str | None:
    """Find the session a command targets.

    ``new-session`` names its session with ``-s`` (falling back to ``-t``);
    every other subcommand targets with ``-t``.
    """
    value = None
    if canonical_subcommand(subcommand) == NEW_SESSION:
        value = find_flag_value(tokens, "-s")
    if value is None:
        value = find_flag_value(tokens, "-t")
    if not value:
        return None
    return normalize_session_name(value)
