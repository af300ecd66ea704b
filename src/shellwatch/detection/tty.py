"""Linux /proc based detection of a pane process blocked on terminal input.

Given a tmux pane, the detector finds the pane's pseudo-terminal, the
foreground process attached to it, and then reads four independent pieces
of evidence from /proc:

- ``stdin_fd``: fd 0 of the process resolves to the pane's tty
- ``wchan``: the kernel wait channel names a tty read or poll routine
- ``stack``: the kernel stack contains tty read frames
- ``syscall``: the current syscall is ``read`` on fd 0

The decision table in :func:`classify_signals` combines them. Its order is
part of the observable behavior: stdin pointing at the terminal is required
for anything above low confidence, and high confidence also needs the
scheduler (wchan) or the stack to agree.

Every probe degrades independently. A process that exits mid-probe, a
permission error on ``/proc/<pid>/stack`` (root only on most kernels) or a
slow ``ps`` turns that one signal into "unknown" and never aborts the rest.
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from shellwatch.detection.result import Confidence, DetectionResult, ProcSignal
from shellwatch.logging import get_logger

if TYPE_CHECKING:
    from shellwatch.tmux.client import TmuxClient

log = get_logger("tty")

TTY_READ_WCHAN_PATTERNS = (
    "n_tty_read",
    "tty_read",
    "wait_woken",
    "do_select",
    "poll_schedule_timeout",
)

TTY_READ_STACK_PATTERNS = (
    "n_tty_read",
    "tty_read",
    "pty_write",
    "tty_ldisc_receive_buf",
)

UNKNOWN = "unknown"


def is_linux_platform() -> bool:
    return sys.platform.startswith("linux")


def wchan_indicates_tty_read(wchan: str | None) -> bool:
    if not wchan:
        return False
    lowered = wchan.lower()
    return any(pattern in lowered for pattern in TTY_READ_WCHAN_PATTERNS)


def stack_indicates_tty_read(stack: str | None) -> bool:
    if not stack:
        return False
    lowered = stack.lower()
    return any(pattern in lowered for pattern in TTY_READ_STACK_PATTERNS)


def syscall_indicates_stdin_read(syscall: str | None) -> bool:
    """True if /proc/<pid>/syscall shows ``read`` (nr 0) on fd 0."""
    if not syscall or syscall == "running":
        return False
    parts = syscall.split()
    if len(parts) < 2:
        return False
    number, fd = parts[0], parts[1]
    return number in ("0", "read") and fd in ("0", "0x0")


def parse_foreground_pid(ps_output: str) -> int | None:
    """Pick the foreground process from ``ps -o pid=,stat=,comm=`` output.

    The foreground process group is marked with ``+`` in the stat column.
    """
    for line in ps_output.splitlines():
        parts = line.split()
        if len(parts) < 2 or "+" not in parts[1]:
            continue
        try:
            return int(parts[0])
        except ValueError:
            continue
    return None


def build_signals(
    pane_tty: str,
    stdin_target: str | None,
    wchan: str | None,
    stack: str | None,
    syscall: str | None,
) -> list[ProcSignal]:
    """Turn raw /proc readings into the four named signals."""
    stack_match = stack_indicates_tty_read(stack)
    return [
        ProcSignal(
            name="stdin_fd",
            value=stdin_target or UNKNOWN,
            indicates_input_wait=stdin_target is not None and stdin_target == pane_tty,
        ),
        ProcSignal(
            name="wchan",
            value=wchan or UNKNOWN,
            indicates_input_wait=wchan_indicates_tty_read(wchan),
        ),
        ProcSignal(
            name="stack",
            value=UNKNOWN if stack is None else (
                "contains tty_read frames" if stack_match else "no tty_read"
            ),
            indicates_input_wait=stack_match,
        ),
        ProcSignal(
            name="syscall",
            value=syscall or UNKNOWN,
            indicates_input_wait=syscall_indicates_stdin_read(syscall),
        ),
    ]


def classify_signals(signals: Sequence[ProcSignal]) -> tuple[bool, Confidence]:
    """Apply the decision table. First matching row wins.

    ===================================  ==========  ========
    condition                            confidence  detected
    ===================================  ==========  ========
    stdin AND (wchan OR stack)           high        yes
    stdin AND (syscall OR >=2 positive)  medium      yes
    >=1 positive                         low         yes
    otherwise                            low         no
    ===================================  ==========  ========
    """
    positive = {s.name for s in signals if s.indicates_input_wait}
    stdin = "stdin_fd" in positive

    if stdin and ("wchan" in positive or "stack" in positive):
        return True, Confidence.HIGH
    if stdin and ("syscall" in positive or len(positive) >= 2):
        return True, Confidence.MEDIUM
    if positive:
        return True, Confidence.LOW
    return False, Confidence.LOW


class ProcReader:
    """Read per-process files under a /proc root, returning None on failure."""

    def __init__(self, proc_root: str | Path = "/proc") -> None:
        self.root = Path(proc_root)

    def _read(self, pid: int, name: str) -> str | None:
        try:
            return (self.root / str(pid) / name).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            log.debug("Cannot read /proc/%d/%s: %s", pid, name, e)
            return None

    def comm(self, pid: int) -> str | None:
        text = self._read(pid, "comm")
        if text is None:
            return None
        return text.strip() or None

    def stdin_target(self, pid: int) -> str | None:
        try:
            return os.readlink(self.root / str(pid) / "fd" / "0")
        except OSError as e:
            log.debug("Cannot resolve stdin of %d: %s", pid, e)
            return None

    def wchan(self, pid: int) -> str | None:
        text = self._read(pid, "wchan")
        if text is None:
            return None
        text = text.strip()
        return None if text in ("", "0") else text

    def stack(self, pid: int) -> str | None:
        return self._read(pid, "stack")

    def syscall(self, pid: int) -> str | None:
        text = self._read(pid, "syscall")
        return text.strip() if text is not None else None


class LinuxProcDetector:
    """Judge whether a tmux pane's foreground process is waiting for input.

    Example:
        >>> detector = LinuxProcDetector(client)
        >>> result = await detector.detect("cea-build")
        >>> if result and result.detected:
        ...     print(result.confidence.value, result.detail)
    """

    def __init__(
        self,
        client: TmuxClient,
        proc_reader: ProcReader | None = None,
        platform_check: Callable[[], bool] = is_linux_platform,
    ) -> None:
        self._client = client
        self._proc = proc_reader or ProcReader()
        self._platform_check = platform_check

    @property
    def _timeout(self) -> float:
        return self._client.probe_timeout

    def _ps_argv(self, pane_tty: str) -> list[str]:
        tty_name = pane_tty.removeprefix("/dev/")
        return ["ps", "-t", tty_name, "-o", "pid=,stat=,comm="]

    async def detect(self, session_label: str) -> DetectionResult | None:
        """Inspect ``session_label``'s pane. None when detection is unavailable."""
        if not self._platform_check():
            return None

        pane_tty = await self._client.pane_tty(session_label)
        if not pane_tty:
            log.debug("No pane tty for %s", session_label)
            return None

        ps = await self._client.executor.execute(self._ps_argv(pane_tty), timeout=self._timeout)
        pid = parse_foreground_pid(ps.output) if ps.success else None
        if pid is None:
            log.debug("No foreground process on %s", pane_tty)
            return None

        command, stdin_target, wchan, stack, syscall = await asyncio.gather(
            self._probe(self._proc.comm, pid),
            self._probe(self._proc.stdin_target, pid),
            self._probe(self._proc.wchan, pid),
            self._probe(self._proc.stack, pid),
            self._probe(self._proc.syscall, pid),
        )
        return self._evaluate(pane_tty, pid, command, stdin_target, wchan, stack, syscall)

    def detect_sync(self, session_label: str) -> DetectionResult | None:
        """Blocking variant of :meth:`detect`."""
        if not self._platform_check():
            return None

        pane_tty = self._client.pane_tty_sync(session_label)
        if not pane_tty:
            log.debug("No pane tty for %s", session_label)
            return None

        ps = self._client.executor.execute_sync(self._ps_argv(pane_tty), timeout=self._timeout)
        pid = parse_foreground_pid(ps.output) if ps.success else None
        if pid is None:
            log.debug("No foreground process on %s", pane_tty)
            return None

        return self._evaluate(
            pane_tty,
            pid,
            self._proc.comm(pid),
            self._proc.stdin_target(pid),
            self._proc.wchan(pid),
            self._proc.stack(pid),
            self._proc.syscall(pid),
        )

    async def _probe(self, reader: Callable[[int], str | None], pid: int) -> str | None:
        try:
            return await asyncio.wait_for(asyncio.to_thread(reader, pid), timeout=self._timeout)
        except asyncio.TimeoutError:
            log.debug("Probe %s for pid %d timed out", reader.__name__, pid)
            return None

    @staticmethod
    def _evaluate(
        pane_tty: str,
        pid: int,
        command: str | None,
        stdin_target: str | None,
        wchan: str | None,
        stack: str | None,
        syscall: str | None,
    ) -> DetectionResult:
        signals = build_signals(pane_tty, stdin_target, wchan, stack, syscall)
        detected, confidence = classify_signals(signals)
        positives = ", ".join(s.name for s in signals if s.indicates_input_wait)

        if detected:
            detail = (
                f'Linux /proc analysis: Process "{command}" (PID {pid}) appears to be '
                f"waiting for TTY input. Positive signals: {positives or 'none'}"
            )
        else:
            detail = (
                f'Linux /proc analysis: Process "{command}" (PID {pid}) does not appear '
                "to be waiting for input"
            )

        log.debug("TTY check pid=%d: detected=%s confidence=%s", pid, detected, confidence.value)
        return DetectionResult(
            detected=detected,
            confidence=confidence,
            detail=detail,
            signals=signals,
            pid=pid,
            command=command,
        )
