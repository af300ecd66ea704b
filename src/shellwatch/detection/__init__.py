"""Liveness detection for processes running in tmux panes.

Two independent detectors answer "is this stuck, slow, or waiting on me?":

- stall: samples the pane text and reports whether it stopped changing
- tty: inspects the foreground process in /proc for a blocking tty read

formatting merges their verdicts into a timeout message.
"""

from shellwatch.detection.formatting import (
    diagnose_timeout,
    diagnose_timeout_sync,
    format_background_message,
    format_detection_results,
    format_system_reminder,
    format_terminal_screen,
    format_timeout_message,
)
from shellwatch.detection.result import (
    Confidence,
    DetectionResult,
    ProcSignal,
    StallResult,
)
from shellwatch.detection.stall import (
    analyze_samples,
    detect_output_stall,
    detect_output_stall_sync,
)
from shellwatch.detection.tty import (
    LinuxProcDetector,
    ProcReader,
    classify_signals,
    is_linux_platform,
)

__all__ = [
    "Confidence",
    "DetectionResult",
    "LinuxProcDetector",
    "ProcReader",
    "ProcSignal",
    "StallResult",
    "analyze_samples",
    "classify_signals",
    "detect_output_stall",
    "detect_output_stall_sync",
    "diagnose_timeout",
    "diagnose_timeout_sync",
    "format_background_message",
    "format_detection_results",
    "format_system_reminder",
    "format_terminal_screen",
    "format_timeout_message",
    "is_linux_platform",
]
