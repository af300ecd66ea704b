"""Exceptions raised by shellwatch helpers.

Detection and tool paths report failures in their result objects; these
exceptions are reserved for callers that asked for a hard answer.
"""

from __future__ import annotations


class ShellWatchError(Exception):
    """Base class for shellwatch errors."""


class TmuxError(ShellWatchError):
    """tmux returned an error the caller asked to see."""


class TmuxNotFoundError(TmuxError):
    """No usable tmux binary could be resolved."""

    def __init__(self, binary: str) -> None:
        super().__init__(f"tmux not available (looked for {binary!r})")
        self.binary = binary
