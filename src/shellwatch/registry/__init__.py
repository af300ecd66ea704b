"""Durable per-conversation registry of agent-managed tmux sessions."""

from shellwatch.registry.registry import RecordResult, SessionRegistry
from shellwatch.registry.reminders import build_session_reminder_message
from shellwatch.registry.state import SessionRecord, SessionState
from shellwatch.registry.storage import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "RecordResult",
    "SessionRecord",
    "SessionRegistry",
    "SessionState",
    "build_session_reminder_message",
]
