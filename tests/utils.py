"""Shared test utilities for shellwatch tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from shellwatch.terminal.result import ShellResult


def ok(output: str = "", command: str = "tmux") -> ShellResult:
    """A successful ShellResult with the given stdout."""
    return ShellResult(
        command=command,
        exit_code=0,
        output=output,
        error_output="",
        status="ok",
        signal=None,
        duration_ms=1.0,
    )


def fail(error_output: str = "", exit_code: int = 1, command: str = "tmux") -> ShellResult:
    """A failed ShellResult with the given stderr."""
    return ShellResult(
        command=command,
        exit_code=exit_code,
        output="",
        error_output=error_output,
        status="error",
        signal=None,
        duration_ms=1.0,
    )


def timed_out(command: str = "tmux") -> ShellResult:
    return ShellResult(
        command=command,
        exit_code=None,
        output="",
        error_output="",
        status="timeout",
        signal="SIGKILL",
        duration_ms=60000.0,
    )


Handler = Callable[[list[str]], ShellResult]


class FakeExecutor:
    """Stands in for SubprocessExecutor and records every argv it is given.

    ``handler`` maps an argv (with the tmux binary already prepended) to a
    result. The default answers every call with an empty success.
    """

    def __init__(self, handler: Handler | None = None) -> None:
        self.handler: Handler = handler or (lambda argv: ok())
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []

    async def execute(
        self,
        argv: Sequence[str],
        timeout: float | None = 30.0,
        env: dict[str, str] | None = None,
    ) -> ShellResult:
        return self.execute_sync(argv, timeout=timeout, env=env)

    def execute_sync(
        self,
        argv: Sequence[str],
        timeout: float | None = 30.0,
        env: dict[str, str] | None = None,
    ) -> ShellResult:
        self.calls.append(list(argv))
        self.timeouts.append(timeout)
        return self.handler(list(argv))

    def subcommands(self) -> list[str]:
        """The first argument after the binary for each recorded call."""
        return [call[1] for call in self.calls if len(call) > 1]


def scripted_captures(outputs: Sequence[str | None]) -> Handler:
    """Answer successive capture-pane calls from ``outputs`` (None = failure)."""
    remaining = list(outputs)

    def handler(argv: list[str]) -> ShellResult:
        if "capture-pane" in argv:
            output = remaining.pop(0) if remaining else ""
            return fail("can't find pane") if output is None else ok(output)
        return ok()

    return handler
