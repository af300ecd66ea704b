"""Subprocess and tool result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ShellResult:
    """Result of one bounded subprocess invocation.

    Attributes:
        command: The argv that was executed, joined with spaces.
        exit_code: Process exit code (0 = success), or None if killed/timeout.
        output: Decoded stdout.
        error_output: Decoded stderr.
        status: Execution status - "ok", "error", or "timeout".
        signal: Signal name if the process was killed (e.g., "SIGKILL").
        duration_ms: Execution duration in milliseconds.
    """

    command: str
    exit_code: int | None
    output: str
    error_output: str
    status: str  # "ok", "error", "timeout"
    signal: str | None
    duration_ms: float

    @property
    def success(self) -> bool:
        """True if command completed with exit code 0."""
        return self.exit_code == 0

    @property
    def timed_out(self) -> bool:
        return self.status == "timeout"

    def error_message(self) -> str:
        """Best human-readable reason for a failure."""
        if self.timed_out:
            return f"Timeout after {self.duration_ms:.0f}ms"
        return self.error_output.strip() or f"Command failed with exit code {self.exit_code}"

    def __repr__(self) -> str:
        if self.success:
            lines = self.output.count("\n") + 1 if self.output else 0
            return f"<ShellResult ok, {lines} lines>"
        return f"<ShellResult {self.status}, exit={self.exit_code}>"


@dataclass
class InteractResult:
    """Result handed back to the agent by the tmux command tool."""

    success: bool
    output: str
