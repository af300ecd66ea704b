"""Tests for bounded subprocess execution and the tmux client."""

from __future__ import annotations

import sys

import pytest

from shellwatch.errors import TmuxError
from shellwatch.terminal.result import ShellResult
from shellwatch.terminal.subprocess_executor import SubprocessExecutor
from shellwatch.tmux.client import TmuxClient
from tests.utils import FakeExecutor, fail, ok

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX commands")


class TestShellResult:
    """Tests for ShellResult dataclass."""

    def test_success_property(self) -> None:
        assert ok("hello\n").success is True

    def test_failure_property(self) -> None:
        result = fail("boom", exit_code=2)
        assert result.success is False
        assert result.error_message() == "boom"

    def test_failure_without_stderr(self) -> None:
        assert fail("", exit_code=3).error_message() == "Command failed with exit code 3"

    def test_timeout_property(self) -> None:
        result = ShellResult(
            command="sleep 100",
            exit_code=None,
            output="",
            error_output="",
            status="timeout",
            signal="SIGKILL",
            duration_ms=1000.0,
        )
        assert result.success is False
        assert result.timed_out
        assert result.error_message() == "Timeout after 1000ms"

    def test_repr_ok(self) -> None:
        assert repr(ok("a\nb")) == "<ShellResult ok, 2 lines>"

    def test_repr_error(self) -> None:
        result = fail("x", exit_code=1)
        assert "error" in repr(result)
        assert "exit=1" in repr(result)


class TestSubprocessExecutor:
    """Tests for SubprocessExecutor against real processes."""

    @pytest.fixture
    def executor(self) -> SubprocessExecutor:
        return SubprocessExecutor(env={"SHELLWATCH_TEST": "1"})

    @pytest.mark.asyncio
    async def test_echo(self, executor: SubprocessExecutor) -> None:
        result = await executor.execute(["echo", "hello", "world"])
        assert result.success
        assert result.output == "hello world\n"
        assert result.status == "ok"
        assert result.command == "echo hello world"

    @pytest.mark.asyncio
    async def test_stderr_and_exit_code(self, executor: SubprocessExecutor) -> None:
        result = await executor.execute(["sh", "-c", "echo oops >&2; exit 3"])
        assert not result.success
        assert result.exit_code == 3
        assert result.status == "error"
        assert result.error_output.strip() == "oops"

    @pytest.mark.asyncio
    async def test_command_not_found(self, executor: SubprocessExecutor) -> None:
        result = await executor.execute(["nonexistent_command_xyz"])
        assert not result.success
        assert result.exit_code == 127
        assert "nonexistent_command_xyz" in result.error_output

    @pytest.mark.asyncio
    async def test_timeout_kills(self, executor: SubprocessExecutor) -> None:
        result = await executor.execute(["sleep", "5"], timeout=0.2)
        assert result.timed_out
        assert result.exit_code is None
        assert result.signal == "SIGKILL"
        assert result.duration_ms < 5000

    @pytest.mark.asyncio
    async def test_env_is_applied(self, executor: SubprocessExecutor) -> None:
        result = await executor.execute(
            ["sh", "-c", "echo $SHELLWATCH_TEST$EXTRA"], env={"EXTRA": "2"}
        )
        assert result.output.strip() == "12"

    def test_sync_echo(self, executor: SubprocessExecutor) -> None:
        result = executor.execute_sync(["echo", "hi"])
        assert result.success
        assert result.output == "hi\n"

    def test_sync_timeout(self, executor: SubprocessExecutor) -> None:
        result = executor.execute_sync(["sleep", "5"], timeout=0.2)
        assert result.timed_out
        assert result.status == "timeout"

    def test_sync_not_found(self, executor: SubprocessExecutor) -> None:
        result = executor.execute_sync(["nonexistent_command_xyz"])
        assert result.exit_code == 127


class TestTmuxClient:
    """Tests for the tmux client helpers."""

    @pytest.mark.asyncio
    async def test_capture_pane(self, client: TmuxClient, executor: FakeExecutor) -> None:
        executor.handler = lambda argv: ok("$ \n")
        assert await client.capture_pane("cea-a") == "$ \n"
        assert executor.calls == [["tmux", "capture-pane", "-p", "-t", "cea-a"]]
        assert executor.timeouts == [2.0]

    @pytest.mark.asyncio
    async def test_capture_pane_failure(self, client: TmuxClient, executor: FakeExecutor) -> None:
        executor.handler = lambda argv: fail("can't find session")
        assert await client.capture_pane("cea-a") is None

    @pytest.mark.asyncio
    async def test_pane_tty(self, client: TmuxClient, executor: FakeExecutor) -> None:
        executor.handler = lambda argv: ok("/dev/pts/4\n")
        assert await client.pane_tty("cea-a") == "/dev/pts/4"

    def test_pane_tty_empty(self, client: TmuxClient, executor: FakeExecutor) -> None:
        executor.handler = lambda argv: ok("\n")
        assert client.pane_tty_sync("cea-a") is None

    @pytest.mark.asyncio
    async def test_list_sessions(self, client: TmuxClient, executor: FakeExecutor) -> None:
        executor.handler = lambda argv: ok("cea-a\nmain\n\n")
        assert await client.list_sessions() == ["cea-a", "main"]

    def test_list_sessions_without_server(
        self, client: TmuxClient, executor: FakeExecutor
    ) -> None:
        executor.handler = lambda argv: fail("no server running on /tmp/tmux-1000/default")
        assert client.list_sessions_sync() == []

    def test_list_sessions_error_raises(self, client: TmuxClient, executor: FakeExecutor) -> None:
        executor.handler = lambda argv: fail("Command not found: tmux", exit_code=127)
        with pytest.raises(TmuxError):
            client.list_sessions_sync()

    @pytest.mark.asyncio
    async def test_kill_session(self, client: TmuxClient, executor: FakeExecutor) -> None:
        assert await client.kill_session("cea-a")
        executor.handler = lambda argv: fail("can't find session: cea-a")
        assert not client.kill_session_sync("cea-a")
        assert executor.calls[0] == ["tmux", "kill-session", "-t", "cea-a"]

    def test_run_uses_explicit_timeout(self, client: TmuxClient, executor: FakeExecutor) -> None:
        client.run_sync(["list-sessions"], timeout=9.0)
        assert executor.timeouts == [9.0]
