"""Tracking of agent-managed tmux sessions per conversation.

The registry watches tmux commands issued by the agent. Creating a session
whose name carries the reserved prefix starts tracking it, killing it stops
tracking, and ``kill-server`` forgets everything. The tracked set is written
through to storage on every change so it survives process restarts, and it
is used both to remind the agent which sessions are still running and to
clean them up when the conversation ends.

Concurrency: there is no internal locking. Callers must serialise mutating
calls for the same conversation id; within one process the in-memory cache
is authoritative, across processes the last writer wins.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TypeGuard

from pydantic import ValidationError

from shellwatch.config.schema import DEFAULT_SESSION_PREFIX
from shellwatch.logging import get_logger
from shellwatch.registry.reminders import build_session_reminder_message
from shellwatch.registry.state import SessionState
from shellwatch.registry.storage import KeyValueStore
from shellwatch.tmux.commands import (
    KILL_SERVER,
    KILL_SESSION,
    NEW_SESSION,
    canonical_subcommand,
    extract_session_name,
    find_subcommand,
    tokenize_command,
)

log = get_logger("registry")

ERROR_PREFIX = "Error:"

# Kill callback: returns True if the session was terminated
SessionKiller = Callable[[str], Awaitable[bool]]
SyncSessionKiller = Callable[[str], bool]


@dataclass
class RecordResult:
    """Tool output after registry processing.

    Attributes:
        output: The command output, with the reminder appended if any.
        reminder: The reminder text alone, or None for non-lifecycle commands.
    """

    output: str
    reminder: str | None = None


class SessionRegistry:
    """Per-conversation registry of tracked tmux sessions."""

    def __init__(
        self,
        store: KeyValueStore,
        prefix: str = DEFAULT_SESSION_PREFIX,
        killer: SessionKiller | None = None,
        sync_killer: SyncSessionKiller | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            store: Durable storage for per-conversation documents.
            prefix: Reserved session name prefix; only matching names are tracked.
            killer: Default kill callback for :meth:`cleanup_all`.
            sync_killer: Default kill callback for :meth:`cleanup_all_sync`.
        """
        self._store = store
        self.prefix = prefix
        self._killer = killer
        self._sync_killer = sync_killer
        self._states: dict[str, SessionState] = {}
        self._current_session_id: str | None = None

    # -- current conversation -----------------------------------------------

    def set_current_session_id(self, session_id: str) -> None:
        self._current_session_id = session_id

    @property
    def current_session_id(self) -> str | None:
        return self._current_session_id

    # -- state access ---------------------------------------------------------

    def is_tracked_name(self, name: str | None) -> TypeGuard[str]:
        return name is not None and name.startswith(self.prefix)

    def _get_or_create_state(self, session_id: str) -> SessionState:
        state = self._states.get(session_id)
        if state is not None:
            return state

        state = self._load(session_id) or SessionState(session_id=session_id)
        self._states[session_id] = state
        return state

    def _load(self, session_id: str) -> SessionState | None:
        document = self._store.get(session_id)
        if document is None:
            return None
        try:
            state = SessionState.from_document(document)
        except ValidationError as e:
            log.warning("Discarding malformed session state for %s: %s", session_id, e)
            return None
        if state.session_id != session_id:
            log.warning(
                "Discarding session state for %s: document belongs to %s",
                session_id,
                state.session_id,
            )
            return None
        return state

    def _persist(self, state: SessionState) -> None:
        state.touch()
        self._store.put(state.session_id, state.to_document())

    def tracked_sessions(self, session_id: str) -> list[str]:
        """Names currently tracked for ``session_id``, in creation order."""
        return list(self._get_or_create_state(session_id).tmux_sessions)

    def cached_session_ids(self) -> list[str]:
        return list(self._states)

    def stored_session_ids(self) -> list[str]:
        """Conversation ids that have a persisted record."""
        return self._store.keys()

    def evict(self, session_id: str) -> None:
        """Drop the in-memory copy so the next access re-reads storage."""
        self._states.pop(session_id, None)

    # -- command hook -----------------------------------------------------------

    def record_event(self, session_id: str, raw_command: str, command_output: str) -> RecordResult:
        """Update tracking for a tmux command the agent just ran.

        Args:
            session_id: Conversation id.
            raw_command: The tmux arguments as typed by the agent.
            command_output: What the command printed (or an "Error: ..." text).

        Returns:
            RecordResult with the output to hand back to the agent.
        """
        if command_output.startswith(ERROR_PREFIX):
            return RecordResult(output=command_output)

        tokens = tokenize_command(raw_command)
        subcommand = canonical_subcommand(find_subcommand(tokens))
        if subcommand not in (NEW_SESSION, KILL_SESSION, KILL_SERVER):
            return RecordResult(output=command_output)

        state = self._get_or_create_state(session_id)
        session_name = extract_session_name(tokens, subcommand)
        created: str | None = None
        changed = False

        if subcommand == NEW_SESSION and self.is_tracked_name(session_name):
            changed = state.add(session_name)
            created = session_name
            log.info("Tracking tmux session %s for %s", session_name, session_id)
        elif subcommand == KILL_SESSION and self.is_tracked_name(session_name):
            changed = state.discard(session_name)
            log.info("Stopped tracking tmux session %s for %s", session_name, session_id)
        elif subcommand == KILL_SERVER:
            changed = state.clear()
            log.info("tmux server killed; cleared tracked sessions for %s", session_id)

        # Persist before building the reminder so it reflects the new state
        if changed:
            self._persist(state)

        reminder = build_session_reminder_message(
            state.tmux_sessions, newly_created=created, prefix=self.prefix
        )
        return RecordResult(output=command_output + reminder, reminder=reminder or None)

    # -- cleanup and drift ------------------------------------------------------

    def _forget(self, session_id: str) -> None:
        self._states.pop(session_id, None)
        self._store.delete(session_id)

    async def cleanup_all(self, session_id: str, kill: SessionKiller | None = None) -> list[str]:
        """Kill every tracked session, then delete the conversation's record.

        Individual kill failures are logged and ignored.

        Args:
            session_id: Conversation id.
            kill: Kill callback; defaults to the one given at construction.

        Returns:
            The names that were tracked before cleanup.

        Raises:
            ValueError: If no kill callback is available.
        """
        kill = kill or self._killer
        if kill is None:
            raise ValueError("cleanup_all needs a kill callback")
        names = self.tracked_sessions(session_id)
        for name in names:
            try:
                killed = await kill(name)
            except OSError as e:
                log.warning("Failed to kill tmux session %s: %s", name, e)
                continue
            if not killed:
                log.debug("tmux session %s was already gone", name)
        self._forget(session_id)
        return names

    def cleanup_all_sync(
        self, session_id: str, kill: SyncSessionKiller | None = None
    ) -> list[str]:
        """Blocking variant of :meth:`cleanup_all`."""
        kill = kill or self._sync_killer
        if kill is None:
            raise ValueError("cleanup_all_sync needs a kill callback")
        names = self.tracked_sessions(session_id)
        for name in names:
            try:
                killed = kill(name)
            except OSError as e:
                log.warning("Failed to kill tmux session %s: %s", name, e)
                continue
            if not killed:
                log.debug("tmux session %s was already gone", name)
        self._forget(session_id)
        return names

    def reconcile(self, session_id: str, live_sessions: Iterable[str]) -> list[str]:
        """Stop tracking sessions that no longer exist in tmux.

        Args:
            session_id: Conversation id.
            live_sessions: Names from ``tmux list-sessions``.

        Returns:
            The names that were dropped.
        """
        live = set(live_sessions)
        state = self._get_or_create_state(session_id)
        stale = [name for name in state.tmux_sessions if name not in live]
        for name in stale:
            state.discard(name)
        if stale:
            log.info("Dropped stale tmux sessions for %s: %s", session_id, ", ".join(stale))
            self._persist(state)
        return stale
