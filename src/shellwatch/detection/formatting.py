"""Turn detector results into messages the agent can act on.

On a command timeout the caller runs both detectors once and passes their
results here. The process is never killed; the message tells the agent what
was observed and which follow-up keystrokes make sense.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shellwatch.detection.result import Confidence, DetectionResult, StallResult
from shellwatch.detection.stall import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_SAMPLE_COUNT,
    detect_output_stall,
    detect_output_stall_sync,
)
from shellwatch.detection.tty import LinuxProcDetector

if TYPE_CHECKING:
    from shellwatch.tmux.client import TmuxClient

TERMINAL_SCREEN_PREFIX = "=== Current Terminal Screen ==="
TERMINAL_SCREEN_SUFFIX = "=== End of Screen ==="

SYSTEM_REMINDER_PREFIX = "[SYSTEM REMINDER]"
TIMEOUT_PREFIX = "[TIMEOUT]"
INPUT_WAIT_PREFIX = "[INPUT WAIT DETECTED]"
OUTPUT_STALLED_PREFIX = "[OUTPUT STALLED]"
BACKGROUND_PREFIX = "[Background process started]"

POSSIBLE_CAUSES = (
    "• The command is still executing (long-running process)",
    "• The process is waiting for input not detected by pattern matching",
    "• The process is stuck or hanging",
)

SUGGESTED_ACTIONS = (
    "• Use shell_interact('<Ctrl+C>') to interrupt",
    "• Use shell_interact('<Enter>') if it might be waiting for confirmation",
    "• Check the terminal screen above for any prompts or messages",
    "• If the process should continue, increase timeout_ms parameter",
)

INPUT_WAIT_ACTIONS = (
    "• Answer the prompt with shell_interact, e.g. shell_interact('y<Enter>')",
    "• Use shell_interact('<Enter>') to accept a default",
    "• Use shell_interact('<Ctrl+C>') to abort the command",
)


def format_terminal_screen(content: str) -> str:
    trimmed = content.strip()
    if not trimmed:
        return "(no visible output)"
    return f"{TERMINAL_SCREEN_PREFIX}\n{trimmed}\n{TERMINAL_SCREEN_SUFFIX}"


def format_system_reminder(message: str) -> str:
    return f"{SYSTEM_REMINDER_PREFIX} {message}"


def format_detection_results(
    tty: DetectionResult | None = None,
    stall: StallResult | None = None,
) -> str:
    """Summarise both detector verdicts, one block per available result.

    Returns an empty string when neither detector produced a result.
    """
    lines: list[str] = []

    if tty is not None:
        verdict = "waiting for input" if tty.detected else "not waiting for input"
        lines.append(f"[TTY CHECK] {verdict} (confidence: {tty.confidence.value})")
        lines.append(f"  {tty.detail}")
        for signal in tty.signals:
            mark = "+" if signal.indicates_input_wait else "-"
            lines.append(f"  {mark} {signal.name}: {signal.value}")

    if stall is not None:
        lines.append(f"[OUTPUT CHECK] {stall.detail} (confidence: {stall.confidence.value})")
        if stall.capture_failed:
            lines.append(
                "  Pane capture failed on every sample; the stall verdict reflects "
                "the capture failing, not the program's output."
            )

    return "\n".join(lines)


def format_timeout_message(
    timeout_ms: int,
    terminal_screen: str,
    tty: DetectionResult | None = None,
    stall: StallResult | None = None,
) -> str:
    """Build the message returned to the agent when a command times out.

    A medium or high confidence input-wait verdict leads the message with
    targeted prompt-answering actions. Failing that, a high confidence stall
    leads with an output-stalled summary. Otherwise the generic timeout text
    is used, with any detector findings placed after the screen.
    """
    formatted_screen = format_terminal_screen(terminal_screen)
    detection_info = format_detection_results(tty, stall)

    if tty is not None and tty.detected and tty.confidence is not Confidence.LOW:
        header = (
            f"{INPUT_WAIT_PREFIX} Command did not finish within {timeout_ms}ms and "
            f'"{tty.command}" (PID {tty.pid}) appears to be waiting for input '
            f"(confidence: {tty.confidence.value})."
        )
        actions = "\n".join(["[SUGGESTED ACTIONS]", *INPUT_WAIT_ACTIONS])
        return f"{header}\n\n{detection_info}\n\n{formatted_screen}\n\n{actions}"

    if (
        stall is not None
        and stall.is_stalled
        and stall.confidence is Confidence.HIGH
        and not stall.capture_failed
    ):
        header = (
            f"{OUTPUT_STALLED_PREFIX} Command did not finish within {timeout_ms}ms and its "
            "output has stopped changing. It may be waiting for input or working silently."
        )
        actions = "\n".join(["[SUGGESTED ACTIONS]", *SUGGESTED_ACTIONS])
        return f"{header}\n\n{formatted_screen}\n\n{detection_info}\n\n{actions}"

    header = (
        f"{TIMEOUT_PREFIX} Command timed out after {timeout_ms}ms. "
        "The process may still be running."
    )
    reminder = "\n".join(
        [
            "[POSSIBLE CAUSES]",
            *POSSIBLE_CAUSES,
            "",
            "[SUGGESTED ACTIONS]",
            *SUGGESTED_ACTIONS,
        ]
    )
    parts = [header, formatted_screen]
    if detection_info:
        parts.append(detection_info)
    parts.append(reminder)
    return "\n\n".join(parts)


def format_background_message(terminal_screen: str) -> str:
    screen = format_terminal_screen(terminal_screen)
    reminder = format_system_reminder(
        "The process is running in the background. "
        "Use shell_interact to check status or send signals."
    )
    return f"{BACKGROUND_PREFIX}\n\n{screen}\n\n{reminder}"


async def diagnose_timeout(
    client: TmuxClient,
    session_label: str,
    timeout_ms: int,
    detector: LinuxProcDetector | None = None,
    sample_count: int = DEFAULT_SAMPLE_COUNT,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> str:
    """Run stall and TTY detection once and format the timeout message.

    Never raises for bad sampling settings: the count is clamped to at least
    one capture and the interval to zero or more.
    """
    detector = detector or LinuxProcDetector(client)
    stall = await detect_output_stall(
        client, session_label, max(sample_count, 1), max(interval_ms, 0)
    )
    tty = await detector.detect(session_label)
    return format_timeout_message(timeout_ms, stall.last_output, tty=tty, stall=stall)


def diagnose_timeout_sync(
    client: TmuxClient,
    session_label: str,
    timeout_ms: int,
    detector: LinuxProcDetector | None = None,
    sample_count: int = DEFAULT_SAMPLE_COUNT,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> str:
    """Blocking variant of :func:`diagnose_timeout`."""
    detector = detector or LinuxProcDetector(client)
    stall = detect_output_stall_sync(
        client, session_label, max(sample_count, 1), max(interval_ms, 0)
    )
    tty = detector.detect_sync(session_label)
    return format_timeout_message(timeout_ms, stall.last_output, tty=tty, stall=stall)
