"""Result types produced by the stall and TTY detectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Confidence(Enum):
    """How strongly the gathered evidence supports a verdict."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ProcSignal:
    """One piece of /proc evidence about the foreground process.

    Attributes:
        name: Signal identifier ("stdin_fd", "wchan", "stack", "syscall").
        value: What was observed, or "unknown" if it could not be read.
        indicates_input_wait: Whether this signal points at a blocking tty read.
    """

    name: str
    value: str
    indicates_input_wait: bool


@dataclass
class DetectionResult:
    """Verdict of the TTY input-wait detector for one pane."""

    detected: bool
    confidence: Confidence
    detail: str
    signals: list[ProcSignal] = field(default_factory=list)
    pid: int | None = None
    command: str | None = None

    @property
    def positive_signals(self) -> list[str]:
        return [s.name for s in self.signals if s.indicates_input_wait]


@dataclass
class StallResult:
    """Verdict of the output stall detector.

    ``capture_failures`` counts samples that were recorded as empty strings
    because ``capture-pane`` failed.
    """

    is_stalled: bool
    sample_count: int
    unchanged_count: int
    last_output: str
    confidence: Confidence
    detail: str
    capture_failures: int = 0

    @property
    def capture_failed(self) -> bool:
        """True when no sample was captured successfully."""
        return self.sample_count > 0 and self.capture_failures == self.sample_count
