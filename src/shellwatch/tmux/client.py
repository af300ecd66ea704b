"""Thin tmux wrapper used by the registry, detectors and tools.

Each helper has an async form and a blocking ``*_sync`` form. Helpers that
serve detection return None on any failure. :meth:`TmuxClient.list_sessions`
raises TmuxError on anything other than "no server running".
"""

from __future__ import annotations

from collections.abc import Sequence

from shellwatch.errors import TmuxError
from shellwatch.logging import get_logger
from shellwatch.terminal.result import ShellResult
from shellwatch.terminal.subprocess_executor import SubprocessExecutor
from shellwatch.tmux.resolver import TmuxPathResolver

log = get_logger("tmux")

_NO_SERVER_MARKERS = ("no server running", "error connecting to", "no sessions")


class TmuxClient:
    """Run tmux subcommands with a per-call wall-clock bound."""

    def __init__(
        self,
        resolver: TmuxPathResolver | None = None,
        executor: SubprocessExecutor | None = None,
        probe_timeout: float = 2.0,
    ) -> None:
        self._executor = executor or SubprocessExecutor(env={"LANG": "en_US.UTF-8"})
        self.resolver = resolver or TmuxPathResolver(executor=self._executor)
        self.probe_timeout = probe_timeout

    @property
    def executor(self) -> SubprocessExecutor:
        return self._executor

    def _argv(self, args: Sequence[str]) -> list[str]:
        return [self.resolver.binary(), *args]

    async def run(self, args: Sequence[str], timeout: float | None = None) -> ShellResult:
        """Run ``tmux <args>``. ``timeout`` defaults to the probe timeout."""
        return await self._executor.execute(
            self._argv(args), timeout=self.probe_timeout if timeout is None else timeout
        )

    def run_sync(self, args: Sequence[str], timeout: float | None = None) -> ShellResult:
        return self._executor.execute_sync(
            self._argv(args), timeout=self.probe_timeout if timeout is None else timeout
        )

    # -- pane content -----------------------------------------------------

    async def capture_pane(self, target: str) -> str | None:
        """Visible text of ``target``'s pane, or None if capture failed."""
        return _capture_output(await self.run(["capture-pane", "-p", "-t", target]), target)

    def capture_pane_sync(self, target: str) -> str | None:
        return _capture_output(self.run_sync(["capture-pane", "-p", "-t", target]), target)

    # -- pane tty -----------------------------------------------------------

    async def pane_tty(self, target: str) -> str | None:
        """Pseudo-terminal device of ``target``'s pane (e.g. ``/dev/pts/3``)."""
        return _first_line(
            await self.run(["display-message", "-p", "-t", target, "#{pane_tty}"])
        )

    def pane_tty_sync(self, target: str) -> str | None:
        return _first_line(self.run_sync(["display-message", "-p", "-t", target, "#{pane_tty}"]))

    # -- sessions -----------------------------------------------------------

    async def list_sessions(self) -> list[str]:
        """Names of live tmux sessions. An absent server means no sessions."""
        return _session_names(await self.run(["list-sessions", "-F", "#{session_name}"]))

    def list_sessions_sync(self) -> list[str]:
        return _session_names(self.run_sync(["list-sessions", "-F", "#{session_name}"]))

    async def kill_session(self, name: str) -> bool:
        result = await self.run(["kill-session", "-t", name])
        if not result.success:
            log.debug("kill-session %s failed: %s", name, result.error_message())
        return result.success

    def kill_session_sync(self, name: str) -> bool:
        result = self.run_sync(["kill-session", "-t", name])
        if not result.success:
            log.debug("kill-session %s failed: %s", name, result.error_message())
        return result.success


def _capture_output(result: ShellResult, target: str) -> str | None:
    if not result.success:
        log.debug("capture-pane %s failed: %s", target, result.error_message())
        return None
    return result.output


def _first_line(result: ShellResult) -> str | None:
    if not result.success:
        return None
    lines = result.output.strip().splitlines()
    return lines[0].strip() if lines else None


def _session_names(result: ShellResult) -> list[str]:
    if result.success:
        return [line.strip() for line in result.output.splitlines() if line.strip()]
    message = result.error_output.lower()
    if any(marker in message for marker in _NO_SERVER_MARKERS):
        return []
    raise TmuxError(f"list-sessions failed: {result.error_message()}")
