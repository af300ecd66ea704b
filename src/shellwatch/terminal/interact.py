"""The tmux command tool: the agent's way to drive background sessions.

The agent hands over tmux arguments as one string (``new-session -d -s
cea-web \\; send-keys -t cea-web 'npm start' Enter``). The tool tokenizes
it, refuses subcommands that read pane or buffer content, runs tmux with a
hard timeout and passes successful output through the session registry so
lifecycle commands are tracked and annotated.

Arguments are passed to tmux as an argv list; no shell is involved.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from shellwatch.logging import get_logger
from shellwatch.terminal.keys import group_keys, parse_keys
from shellwatch.terminal.result import InteractResult, ShellResult
from shellwatch.tmux.commands import find_subcommand, is_blocked_subcommand, tokenize_command

if TYPE_CHECKING:
    from shellwatch.registry.registry import SessionRegistry
    from shellwatch.tmux.client import TmuxClient

log = get_logger("interact")

DEFAULT_COMMAND_TIMEOUT = 60.0
DEFAULT_KEYSTROKE_WAIT_MS = 500
COMMAND_SEPARATOR = ";"
# tmux reads a trailing ";" on any argument as a separator; "\;" is a literal ";"
ESCAPED_SEPARATOR = "\\;"


def split_chained(tokens: list[str]) -> list[list[str]]:
    """Split tokens on tmux's ``;`` command separator."""
    segments: list[list[str]] = [[]]
    for token in tokens:
        if token == COMMAND_SEPARATOR:
            segments.append([])
        else:
            segments[-1].append(token)
    return [segment for segment in segments if segment]


def find_blocked_subcommand(tokens: list[str]) -> str | None:
    """Return the first blocked subcommand in any chained segment, if any."""
    for segment in split_chained(tokens):
        subcommand = find_subcommand(segment)
        if subcommand and is_blocked_subcommand(subcommand):
            return subcommand
    return None


class TmuxCommandTool:
    """Validate, run and post-process agent-issued tmux commands.

    Example:
        >>> tool = TmuxCommandTool(client, registry)
        >>> result = await tool.run("new-session -d -s cea-web", session_id="conv-1")
        >>> result.success
        True
    """

    def __init__(
        self,
        client: TmuxClient,
        registry: SessionRegistry | None = None,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self._client = client
        self._registry = registry
        self.command_timeout = command_timeout

    def check(self, tmux_command: str) -> tuple[list[str], InteractResult | None]:
        """Tokenize and validate a command.

        Returns:
            The tokens, and a rejection result if the command must not run.
        """
        tokens = tokenize_command(tmux_command)
        if not tokens:
            return tokens, InteractResult(success=False, output="Error: Empty tmux command")

        blocked = find_blocked_subcommand(tokens)
        if blocked is not None:
            log.info("Rejected blocked tmux subcommand %r", blocked)
            return tokens, InteractResult(
                success=False,
                output=(
                    f"Error: '{blocked}' is blocked. Use shell_execute instead for "
                    "capturing/printing terminal output."
                ),
            )
        return tokens, None

    def _finish(
        self, tmux_command: str, result: ShellResult, session_id: str | None
    ) -> InteractResult:
        if result.timed_out:
            return InteractResult(
                success=False,
                output=f"Error: Timeout after {int(self.command_timeout * 1000)}ms",
            )
        if not result.success:
            return InteractResult(success=False, output=f"Error: {result.error_message()}")

        output = result.output or "(no output)"
        session_id = session_id or (self._registry.current_session_id if self._registry else None)
        if self._registry is not None and session_id:
            output = self._registry.record_event(session_id, tmux_command, output).output
        return InteractResult(success=True, output=output)

    async def run(self, tmux_command: str, session_id: str | None = None) -> InteractResult:
        """Run ``tmux <tmux_command>`` and update the registry.

        Args:
            tmux_command: tmux arguments without the ``tmux`` prefix.
            session_id: Conversation id; defaults to the registry's current one.
        """
        tokens, rejection = self.check(tmux_command)
        if rejection is not None:
            return rejection
        result = await self._client.run(tokens, timeout=self.command_timeout)
        return self._finish(tmux_command, result, session_id)

    def run_sync(self, tmux_command: str, session_id: str | None = None) -> InteractResult:
        """Blocking variant of :meth:`run`."""
        tokens, rejection = self.check(tmux_command)
        if rejection is not None:
            return rejection
        result = self._client.run_sync(tokens, timeout=self.command_timeout)
        return self._finish(tmux_command, result, session_id)

    @staticmethod
    def _send_keys_args(target: str, keystrokes: str) -> list[str]:
        args: list[str] = []
        for is_literal, value in group_keys(parse_keys(keystrokes)):
            if args:
                args.append(COMMAND_SEPARATOR)
            args.extend(["send-keys", "-t", target])
            if is_literal:
                args.append("-l")
                if value.endswith(COMMAND_SEPARATOR):
                    value = value[:-1] + ESCAPED_SEPARATOR
            args.append(value)
        return args

    async def send_keystrokes(
        self,
        target: str,
        keystrokes: str,
        wait_ms: int = DEFAULT_KEYSTROKE_WAIT_MS,
    ) -> InteractResult:
        """Type ``keystrokes`` into ``target`` and return the screen afterwards.

        Args:
            target: tmux target (session, or session:window.pane).
            keystrokes: Agent notation, e.g. ``"y<Enter>"`` or ``"<Ctrl+C>"``.
            wait_ms: Delay before capturing the screen.
        """
        args = self._send_keys_args(target, keystrokes)
        if not args:
            return InteractResult(success=False, output="Error: No keystrokes to send")

        result = await self._client.run(args, timeout=self.command_timeout)
        if not result.success:
            return InteractResult(success=False, output=f"Error: {result.error_message()}")

        await asyncio.sleep(wait_ms / 1000)
        screen = await self._client.capture_pane(target)
        return InteractResult(success=True, output=(screen or "").strip() or "(no visible output)")

    def send_keystrokes_sync(
        self,
        target: str,
        keystrokes: str,
        wait_ms: int = DEFAULT_KEYSTROKE_WAIT_MS,
    ) -> InteractResult:
        """Blocking variant of :meth:`send_keystrokes`."""
        args = self._send_keys_args(target, keystrokes)
        if not args:
            return InteractResult(success=False, output="Error: No keystrokes to send")

        result = self._client.run_sync(args, timeout=self.command_timeout)
        if not result.success:
            return InteractResult(success=False, output=f"Error: {result.error_message()}")

        time.sleep(wait_ms / 1000)
        screen = self._client.capture_pane_sync(target)
        return InteractResult(success=True, output=(screen or "").strip() or "(no visible output)")
