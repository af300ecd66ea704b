"""Bounded subprocess execution, async and blocking.

Every tmux, ps and probe call in shellwatch goes through this executor so
that each one carries a hard wall-clock timeout. Expiry kills the child and
comes back as a ``timeout`` ShellResult instead of raising.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
import time
from collections.abc import Sequence

from shellwatch.logging import get_logger
from shellwatch.terminal.result import ShellResult

log = get_logger("subprocess")


class SubprocessExecutor:
    """Execute argv lists with asyncio subprocesses or ``subprocess.run``."""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        """Initialize the executor.

        Args:
            env: Extra environment variables applied to every child.
        """
        self._env = env or {}

    def _build_env(self, env: dict[str, str] | None) -> dict[str, str]:
        process_env = os.environ.copy()
        process_env.update(self._env)
        if env:
            process_env.update(env)
        return process_env

    async def execute(
        self,
        argv: Sequence[str],
        timeout: float | None = 30.0,
        env: dict[str, str] | None = None,
    ) -> ShellResult:
        """Run ``argv`` to completion without blocking the event loop.

        Args:
            argv: Program and arguments.
            timeout: Timeout in seconds. None for no timeout.
            env: Additional environment variables.

        Returns:
            ShellResult with execution details.
        """
        start_time = time.perf_counter()
        full_command = " ".join(argv)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._build_env(env),
            )
        except OSError as e:
            return self._spawn_failure(full_command, argv[0], e, start_time)

        try:
            if timeout is not None:
                stdout_data, stderr_data = await asyncio.wait_for(
                    process.communicate(), timeout=timeout
                )
            else:
                stdout_data, stderr_data = await process.communicate()
        except asyncio.TimeoutError:
            try:
                process.kill()
                await process.wait()
            except ProcessLookupError:
                pass  # Process already gone
            log.debug("Timed out after %ss: %s", timeout, full_command)
            return self._timeout_result(full_command, start_time)

        exit_code = process.returncode
        return ShellResult(
            command=full_command,
            exit_code=exit_code,
            output=stdout_data.decode("utf-8", errors="replace"),
            error_output=stderr_data.decode("utf-8", errors="replace"),
            status="ok" if exit_code == 0 else "error",
            signal=None,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

    def execute_sync(
        self,
        argv: Sequence[str],
        timeout: float | None = 30.0,
        env: dict[str, str] | None = None,
    ) -> ShellResult:
        """Blocking counterpart of :meth:`execute`."""
        start_time = time.perf_counter()
        full_command = " ".join(argv)

        try:
            completed = subprocess.run(
                list(argv),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=timeout,
                env=self._build_env(env),
                check=False,
            )
        except subprocess.TimeoutExpired:
            log.debug("Timed out after %ss: %s", timeout, full_command)
            return self._timeout_result(full_command, start_time)
        except OSError as e:
            return self._spawn_failure(full_command, argv[0], e, start_time)

        exit_code = completed.returncode
        return ShellResult(
            command=full_command,
            exit_code=exit_code,
            output=completed.stdout.decode("utf-8", errors="replace"),
            error_output=completed.stderr.decode("utf-8", errors="replace"),
            status="ok" if exit_code == 0 else "error",
            signal=None,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

    @staticmethod
    def _timeout_result(full_command: str, start_time: float) -> ShellResult:
        return ShellResult(
            command=full_command,
            exit_code=None,
            output="",
            error_output="",
            status="timeout",
            signal="SIGKILL",
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

    @staticmethod
    def _spawn_failure(
        full_command: str, program: str, error: OSError, start_time: float
    ) -> ShellResult:
        if isinstance(error, FileNotFoundError):
            exit_code, message = 127, f"Command not found: {program}"
        elif isinstance(error, PermissionError):
            exit_code, message = 126, f"Permission denied: {program}"
        else:
            exit_code, message = 1, f"OS error: {error}"
        return ShellResult(
            command=full_command,
            exit_code=exit_code,
            output="",
            error_output=message,
            status="error",
            signal=None,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
