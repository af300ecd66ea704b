"""Tests for /proc based input-wait detection."""

from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest

from shellwatch.detection.result import Confidence, ProcSignal
from shellwatch.detection.tty import (
    LinuxProcDetector,
    ProcReader,
    build_signals,
    classify_signals,
    parse_foreground_pid,
    stack_indicates_tty_read,
    syscall_indicates_stdin_read,
    wchan_indicates_tty_read,
)
from shellwatch.terminal.result import ShellResult
from shellwatch.tmux.client import TmuxClient
from tests.utils import FakeExecutor, fail, ok

PANE_TTY = "/dev/pts/7"
PS_OUTPUT = "  100 Ss   bash\n  123 S+   python3\n"
STACK_READING = "[<0>] wait_woken+0x5c/0x90\n[<0>] n_tty_read+0x3e1/0x600\n[<0>] tty_read+0xd2/0x130\n"


def signals(**positive: bool) -> list[ProcSignal]:
    names = ("stdin_fd", "wchan", "stack", "syscall")
    return [ProcSignal(name, "v", positive.get(name, False)) for name in names]


def write_proc(
    root: Path,
    pid: int,
    comm: str | None = "python3\n",
    stdin: str | None = PANE_TTY,
    wchan: str | None = "n_tty_read",
    stack: str | None = STACK_READING,
    syscall: str | None = "0 0x0 0x7ffd3c 0x1 0x0 0x0 0x0 0x7ffd 0x7f12\n",
) -> None:
    """Lay out a fake /proc/<pid> directory."""
    proc = root / str(pid)
    (proc / "fd").mkdir(parents=True)
    for name, content in (("comm", comm), ("wchan", wchan), ("stack", stack), ("syscall", syscall)):
        if content is not None:
            (proc / name).write_text(content, encoding="utf-8")
    if stdin is not None:
        os.symlink(stdin, proc / "fd" / "0")


def tmux_and_ps(pane_tty: str = PANE_TTY, ps_output: str = PS_OUTPUT):
    def handler(argv: list[str]) -> ShellResult:
        if argv[0] == "ps":
            return ok(ps_output)
        if "display-message" in argv:
            return ok(pane_tty + "\n")
        return fail("unexpected")

    return handler


class TestClassifySignals:
    """Test the decision table, including row precedence."""

    def test_nothing_positive(self) -> None:
        assert classify_signals(signals()) == (False, Confidence.LOW)

    def test_stdin_and_wchan_is_high(self) -> None:
        assert classify_signals(signals(stdin_fd=True, wchan=True)) == (True, Confidence.HIGH)

    def test_stdin_and_stack_is_high(self) -> None:
        assert classify_signals(signals(stdin_fd=True, stack=True)) == (True, Confidence.HIGH)

    def test_all_positive_is_high(self) -> None:
        result = classify_signals(signals(stdin_fd=True, wchan=True, stack=True, syscall=True))
        assert result == (True, Confidence.HIGH)

    def test_stdin_and_syscall_is_medium(self) -> None:
        assert classify_signals(signals(stdin_fd=True, syscall=True)) == (True, Confidence.MEDIUM)

    def test_stdin_alone_is_low(self) -> None:
        assert classify_signals(signals(stdin_fd=True)) == (True, Confidence.LOW)

    def test_kernel_signals_without_stdin_are_low(self) -> None:
        result = classify_signals(signals(wchan=True, stack=True, syscall=True))
        assert result == (True, Confidence.LOW)

    def test_single_non_stdin_signal_is_low(self) -> None:
        assert classify_signals(signals(syscall=True)) == (True, Confidence.LOW)


class TestSignalParsing:
    """Test interpretation of raw /proc readings."""

    @pytest.mark.parametrize(
        "wchan", ["n_tty_read", "tty_read", "wait_woken", "do_select", "poll_schedule_timeout"]
    )
    def test_wchan_positive(self, wchan: str) -> None:
        assert wchan_indicates_tty_read(wchan)

    @pytest.mark.parametrize("wchan", [None, "", "hrtimer_nanosleep", "do_wait"])
    def test_wchan_negative(self, wchan: str | None) -> None:
        assert not wchan_indicates_tty_read(wchan)

    def test_stack(self) -> None:
        assert stack_indicates_tty_read(STACK_READING)
        assert not stack_indicates_tty_read("[<0>] do_wait+0x1/0x2\n")
        assert not stack_indicates_tty_read(None)

    @pytest.mark.parametrize(
        "syscall", ["0 0x0 0x7ffd 0x1", "read 0 0x7ffd", "0 0 0x1"]
    )
    def test_syscall_read_on_stdin(self, syscall: str) -> None:
        assert syscall_indicates_stdin_read(syscall)

    @pytest.mark.parametrize(
        "syscall", [None, "", "running", "0", "0 0x3 0x7ffd", "7 0x0 0x1", "-1 0x7ffd 0x1"]
    )
    def test_syscall_other(self, syscall: str | None) -> None:
        assert not syscall_indicates_stdin_read(syscall)

    def test_foreground_pid(self) -> None:
        assert parse_foreground_pid(PS_OUTPUT) == 123

    def test_foreground_pid_missing(self) -> None:
        assert parse_foreground_pid("  100 Ss bash\n") is None
        assert parse_foreground_pid("") is None
        assert parse_foreground_pid("abc S+ weird\n") is None

    def test_build_signals_marks_unknown(self) -> None:
        built = build_signals(PANE_TTY, None, None, None, None)

        assert [s.name for s in built] == ["stdin_fd", "wchan", "stack", "syscall"]
        assert all(s.value == "unknown" for s in built)
        assert not any(s.indicates_input_wait for s in built)

    def test_build_signals_stdin_elsewhere(self) -> None:
        built = build_signals(PANE_TTY, "/dev/null", None, None, None)
        assert built[0].value == "/dev/null"
        assert not built[0].indicates_input_wait

    def test_build_signals_stack_summary(self) -> None:
        built = build_signals(PANE_TTY, PANE_TTY, None, "[<0>] do_wait\n", None)
        assert built[2].value == "no tty_read"
        built = build_signals(PANE_TTY, PANE_TTY, None, STACK_READING, None)
        assert built[2].value == "contains tty_read frames"


class TestProcReader:
    """Test reading a fake /proc tree."""

    def test_reads_all_files(self, tmp_path: Path) -> None:
        write_proc(tmp_path, 123)
        reader = ProcReader(tmp_path)

        assert reader.comm(123) == "python3"
        assert reader.stdin_target(123) == PANE_TTY
        assert reader.wchan(123) == "n_tty_read"
        assert "n_tty_read" in reader.stack(123)
        assert reader.syscall(123).startswith("0 0x0")

    def test_missing_process(self, tmp_path: Path) -> None:
        reader = ProcReader(tmp_path)

        assert reader.comm(999) is None
        assert reader.stdin_target(999) is None
        assert reader.wchan(999) is None
        assert reader.stack(999) is None
        assert reader.syscall(999) is None

    def test_zero_wchan_means_running(self, tmp_path: Path) -> None:
        write_proc(tmp_path, 5, wchan="0")
        assert ProcReader(tmp_path).wchan(5) is None

    def test_empty_comm(self, tmp_path: Path) -> None:
        write_proc(tmp_path, 5, comm="\n")
        assert ProcReader(tmp_path).comm(5) is None


class TestLinuxProcDetector:
    """Test end-to-end detection with fake tmux, ps and /proc."""

    @pytest.mark.asyncio
    async def test_reading_process_is_high_confidence(self, tmp_path: Path) -> None:
        write_proc(tmp_path, 123)
        executor = FakeExecutor(tmux_and_ps())
        detector = LinuxProcDetector(
            TmuxClient(executor=executor), ProcReader(tmp_path), platform_check=lambda: True
        )

        result = await detector.detect("cea-build")

        assert result is not None
        assert result.detected
        assert result.confidence is Confidence.HIGH
        assert result.pid == 123
        assert result.command == "python3"
        assert result.positive_signals == ["stdin_fd", "wchan", "stack", "syscall"]
        assert result.detail == (
            'Linux /proc analysis: Process "python3" (PID 123) appears to be waiting for '
            "TTY input. Positive signals: stdin_fd, wchan, stack, syscall"
        )
        assert ["ps", "-t", "pts/7", "-o", "pid=,stat=,comm="] in executor.calls
        assert ["tmux", "display-message", "-p", "-t", "cea-build", "#{pane_tty}"] in executor.calls

    @pytest.mark.asyncio
    async def test_busy_process_is_not_high(self, tmp_path: Path) -> None:
        write_proc(tmp_path, 123, wchan="hrtimer_nanosleep", stack=None, syscall="running")
        detector = LinuxProcDetector(
            TmuxClient(executor=FakeExecutor(tmux_and_ps())),
            ProcReader(tmp_path),
            platform_check=lambda: True,
        )

        result = await detector.detect("cea-build")

        assert result is not None
        assert result.confidence is Confidence.LOW
        assert result.positive_signals == ["stdin_fd"]
        stack = next(s for s in result.signals if s.name == "stack")
        assert stack.value == "unknown"

    @pytest.mark.asyncio
    async def test_stdin_redirected(self, tmp_path: Path) -> None:
        write_proc(
            tmp_path, 123, stdin="/dev/null", wchan="do_wait", stack="[<0>] do_wait\n",
            syscall="61 0xffffffff",
        )
        detector = LinuxProcDetector(
            TmuxClient(executor=FakeExecutor(tmux_and_ps())),
            ProcReader(tmp_path),
            platform_check=lambda: True,
        )

        result = await detector.detect("cea-build")

        assert result is not None
        assert not result.detected
        assert result.confidence is Confidence.LOW
        assert result.detail == (
            'Linux /proc analysis: Process "python3" (PID 123) does not appear to be '
            "waiting for input"
        )

    @pytest.mark.asyncio
    async def test_unsupported_platform(self) -> None:
        executor = FakeExecutor(tmux_and_ps())
        detector = LinuxProcDetector(TmuxClient(executor=executor), platform_check=lambda: False)

        assert await detector.detect("cea-build") is None
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_pane_lookup_failure(self) -> None:
        executor = FakeExecutor(lambda argv: fail("can't find session: cea-x"))
        detector = LinuxProcDetector(TmuxClient(executor=executor), platform_check=lambda: True)

        assert await detector.detect("cea-x") is None
        assert len(executor.calls) == 1

    @pytest.mark.asyncio
    async def test_no_foreground_process(self, tmp_path: Path) -> None:
        detector = LinuxProcDetector(
            TmuxClient(executor=FakeExecutor(tmux_and_ps(ps_output="  100 Ss bash\n"))),
            ProcReader(tmp_path),
            platform_check=lambda: True,
        )
        assert await detector.detect("cea-build") is None

    @pytest.mark.asyncio
    async def test_hung_read_degrades_one_signal(self, tmp_path: Path) -> None:
        write_proc(tmp_path, 123)
        release = threading.Event()

        class HangingStackReader(ProcReader):
            def stack(self, pid: int) -> str | None:
                release.wait(timeout=5)
                return STACK_READING

        detector = LinuxProcDetector(
            TmuxClient(executor=FakeExecutor(tmux_and_ps()), probe_timeout=0.05),
            HangingStackReader(tmp_path),
            platform_check=lambda: True,
        )

        try:
            result = await detector.detect("cea-build")
        finally:
            release.set()

        assert result is not None
        stack = next(s for s in result.signals if s.name == "stack")
        assert stack.value == "unknown"
        assert not stack.indicates_input_wait
        assert result.positive_signals == ["stdin_fd", "wchan", "syscall"]
        assert result.detected
        assert result.confidence is Confidence.HIGH

    def test_detect_sync(self, tmp_path: Path) -> None:
        write_proc(tmp_path, 123, wchan=None, stack=None)
        detector = LinuxProcDetector(
            TmuxClient(executor=FakeExecutor(tmux_and_ps())),
            ProcReader(tmp_path),
            platform_check=lambda: True,
        )

        result = detector.detect_sync("cea-build")

        assert result is not None
        assert result.confidence is Confidence.MEDIUM
        assert result.positive_signals == ["stdin_fd", "syscall"]
