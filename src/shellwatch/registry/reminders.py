"""Reminder text appended to tmux lifecycle command output."""

from __future__ import annotations

from collections.abc import Sequence

from shellwatch.config.schema import DEFAULT_SESSION_PREFIX


def build_session_reminder_message(
    sessions: Sequence[str],
    newly_created: str | None = None,
    prefix: str = DEFAULT_SESSION_PREFIX,
) -> str:
    """List tracked sessions, with follow-up steps for a session just created.

    Returns an empty string when nothing is tracked.
    """
    if not sessions:
        return ""

    message = f"\n\n[System Reminder] Active {prefix}* tmux sessions: {', '.join(sessions)}"

    if newly_created:
        message += (
            f"\n[Action Required] Background process started in '{newly_created}'. "
            "Before reporting completion:\n"
            "  1. Wait: shell_execute sleep 2-5\n"
            f"  2. Verify output: shell_execute tmux capture-pane -t {newly_created} -p\n"
            "  3. For servers: test the endpoint (e.g., curl localhost:PORT)"
        )

    return message
