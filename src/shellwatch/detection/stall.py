"""Output stall detection by repeated pane sampling.

The pane's visible text is captured N times with a fixed interval between
captures. If every adjacent pair of samples is identical the output has
stalled. A stall alone cannot tell "waiting for input" from "busy but
silent"; the TTY detector supplies that distinction.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from shellwatch.detection.result import Confidence, StallResult
from shellwatch.logging import get_logger

if TYPE_CHECKING:
    from shellwatch.tmux.client import TmuxClient

log = get_logger("stall")

DEFAULT_SAMPLE_COUNT = 3
DEFAULT_INTERVAL_MS = 500


def analyze_samples(
    samples: Sequence[str],
    interval_ms: int = DEFAULT_INTERVAL_MS,
    capture_failures: int = 0,
) -> StallResult:
    """Score a sequence of pane captures.

    Args:
        samples: Captured pane texts in order. Failed captures are "".
        interval_ms: Delay that separated consecutive samples.
        capture_failures: How many of the samples were failed captures.

    Returns:
        StallResult with counts, confidence and a one-line summary.
    """
    sample_count = len(samples)
    unchanged_count = sum(
        1 for previous, current in zip(samples, samples[1:]) if previous == current
    )
    is_stalled = unchanged_count == sample_count - 1

    if is_stalled and sample_count >= 3:
        confidence = Confidence.HIGH
    elif unchanged_count >= sample_count / 2:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW

    if is_stalled:
        detail = (
            f"Output stalled: {sample_count} samples over "
            f"{(sample_count - 1) * interval_ms}ms showed no change"
        )
    else:
        detail = (
            f"Output active: {sample_count - unchanged_count} of "
            f"{sample_count} samples showed changes"
        )
    if capture_failures:
        detail += f" ({capture_failures} of {sample_count} captures failed)"

    return StallResult(
        is_stalled=is_stalled,
        sample_count=sample_count,
        unchanged_count=unchanged_count,
        last_output=samples[-1] if samples else "",
        confidence=confidence,
        detail=detail,
        capture_failures=capture_failures,
    )


def _check_sample_count(sample_count: int) -> None:
    if sample_count < 1:
        raise ValueError(f"sample_count must be at least 1, got {sample_count}")


async def detect_output_stall(
    client: TmuxClient,
    session_label: str,
    sample_count: int = DEFAULT_SAMPLE_COUNT,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> StallResult:
    """Sample ``session_label`` without blocking the event loop."""
    _check_sample_count(sample_count)
    samples: list[str] = []
    failures = 0

    for i in range(sample_count):
        output = await client.capture_pane(session_label)
        if output is None:
            failures += 1
        samples.append(output or "")
        if i < sample_count - 1:
            await asyncio.sleep(interval_ms / 1000)

    result = analyze_samples(samples, interval_ms, failures)
    log.debug("Stall check for %s: %s", session_label, result.detail)
    return result


def detect_output_stall_sync(
    client: TmuxClient,
    session_label: str,
    sample_count: int = DEFAULT_SAMPLE_COUNT,
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> StallResult:
    """Blocking variant of :func:`detect_output_stall` for synchronous callers."""
    _check_sample_count(sample_count)
    samples: list[str] = []
    failures = 0

    for i in range(sample_count):
        output = client.capture_pane_sync(session_label)
        if output is None:
            failures += 1
        samples.append(output or "")
        if i < sample_count - 1:
            time.sleep(interval_ms / 1000)

    result = analyze_samples(samples, interval_ms, failures)
    log.debug("Stall check for %s: %s", session_label, result.detail)
    return result
