"""Per-conversation tracking state and its persisted document form."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def now_millis() -> int:
    return int(time.time() * 1000)


class SessionRecord(BaseModel):
    """On-disk document for one conversation's tracked tmux sessions."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionID", min_length=1)
    tmux_sessions: list[str] = Field(default_factory=list, alias="tmuxSessions")
    updated_at: int = Field(alias="updatedAt")


@dataclass
class SessionState:
    """Tracked agent-managed tmux sessions for one conversation.

    ``tmux_sessions`` behaves as an insertion-ordered set.
    """

    session_id: str
    tmux_sessions: list[str] = field(default_factory=list)
    updated_at: int = field(default_factory=now_millis)

    def add(self, name: str) -> bool:
        if name in self.tmux_sessions:
            return False
        self.tmux_sessions.append(name)
        return True

    def discard(self, name: str) -> bool:
        if name not in self.tmux_sessions:
            return False
        self.tmux_sessions.remove(name)
        return True

    def clear(self) -> bool:
        had_sessions = bool(self.tmux_sessions)
        self.tmux_sessions.clear()
        return had_sessions

    def touch(self) -> None:
        self.updated_at = now_millis()

    def to_document(self) -> dict[str, Any]:
        record = SessionRecord(
            session_id=self.session_id,
            tmux_sessions=list(self.tmux_sessions),
            updated_at=self.updated_at,
        )
        return record.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> SessionState:
        """Build state from a stored document.

        Raises:
            pydantic.ValidationError: If the document does not match the schema.
        """
        record = SessionRecord.model_validate(data)
        names: list[str] = []
        for name in record.tmux_sessions:
            if name not in names:
                names.append(name)
        return cls(
            session_id=record.session_id,
            tmux_sessions=names,
            updated_at=record.updated_at,
        )
