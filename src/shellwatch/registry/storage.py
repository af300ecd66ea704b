"""Key-value persistence for session registry documents.

The registry talks to storage only through :class:`KeyValueStore`, so the
JSON-file backend can be swapped without touching command classification.

JsonFileStore layout:
  <storage_dir>/<session-id>.json

Ids are percent-encoded into file names, so any non-empty id maps to a
file directly inside the storage directory (``team/conv-1`` is stored as
``team%2Fconv-1.json``).

Each write replaces the whole document (read-then-fully-rewrite); there is
no cross-process locking, so concurrent writers resolve last-writer-wins.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote, unquote

from shellwatch.logging import get_logger

log = get_logger("storage")


class KeyValueStore(Protocol):
    """Minimal document store keyed by conversation id."""

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the stored document, or None if absent or unreadable."""
        ...

    def put(self, key: str, document: dict[str, Any]) -> None:
        """Replace the stored document."""
        ...

    def delete(self, key: str) -> bool:
        """Remove the document. Returns True if one existed."""
        ...

    def keys(self) -> list[str]:
        """Keys that currently have a stored document, sorted."""
        ...


class MemoryStore:
    """In-process store, used by tests and ephemeral runtimes."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        document = self._documents.get(key)
        return json.loads(json.dumps(document)) if document is not None else None

    def put(self, key: str, document: dict[str, Any]) -> None:
        self._documents[key] = json.loads(json.dumps(document))

    def delete(self, key: str) -> bool:
        return self._documents.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._documents)


class JsonFileStore:
    """One pretty-printed JSON file per key under a fixed directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    @staticmethod
    def file_stem(key: str) -> str:
        """Encode ``key`` as a file name that stays inside the directory.

        Raises:
            ValueError: If the key is empty.
        """
        if not key:
            raise ValueError("Session id for storage must not be empty")
        stem = quote(key, safe="")
        if stem.startswith("."):
            stem = "%2E" + stem[1:]
        return stem

    def path_for(self, key: str) -> Path:
        """Get the file path for ``key``."""
        return self.directory / f"{self.file_stem(key)}.json"

    def get(self, key: str) -> dict[str, Any] | None:
        path = self.path_for(key)
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            log.warning("Failed to load session state from %s: %s", path, e)
            return None

        if not isinstance(data, dict):
            log.warning("Ignoring session state in %s: not a JSON object", path)
            return None
        return data

    def put(self, key: str, document: dict[str, Any]) -> None:
        """Write atomically via a temp file in the same directory."""
        path = self.path_for(key)
        self.directory.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(
            dir=str(self.directory), prefix=f"{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(temp_name, path)
        except BaseException:
            # Clean up temp file on failure
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

        log.debug("Saved session state %s to %s", key, path)

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        log.debug("Deleted session state %s", key)
        return True

    def keys(self) -> list[str]:
        """Session ids that currently have a stored document."""
        if not self.directory.exists():
            return []
        return sorted(unquote(p.stem) for p in self.directory.glob("*.json"))
