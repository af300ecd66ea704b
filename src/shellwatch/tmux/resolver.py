"""Locate and verify the tmux binary once per resolver lifetime.

Resolution is a PATH lookup followed by a ``tmux -V`` probe. Both success
and failure are cached: a missing tmux is not retried, so callers on a
machine without tmux do not pay a subprocess spawn on every tool call.
"""

from __future__ import annotations

import asyncio
import shutil
import threading

from shellwatch.logging import get_logger
from shellwatch.terminal.subprocess_executor import SubprocessExecutor

log = get_logger("tmux.resolver")

_UNRESOLVED = object()


class TmuxPathResolver:
    """Resolve the tmux executable path with a cached positive or negative result.

    Example:
        >>> resolver = TmuxPathResolver()
        >>> resolver.start_background_check()
        >>> ...
        >>> path = await resolver.resolve()
        >>> path or "tmux not available"
    """

    def __init__(
        self,
        binary: str | None = None,
        probe_timeout: float = 2.0,
        executor: SubprocessExecutor | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            binary: Explicit tmux name or path. Defaults to "tmux" on PATH.
            probe_timeout: Seconds allowed for the ``-V`` verification probe.
            executor: Subprocess executor (injectable for tests).
        """
        self._binary = binary or "tmux"
        self._probe_timeout = probe_timeout
        self._executor = executor or SubprocessExecutor()
        self._result: object = _UNRESOLVED
        self._task: asyncio.Task[str | None] | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def resolved(self) -> bool:
        """True once a positive or negative result has been cached."""
        return self._result is not _UNRESOLVED

    def cached_path(self) -> str | None:
        """Return the cached path without suspending (None if unknown or missing)."""
        result = self._result
        return result if isinstance(result, str) else None

    def _lookup(self) -> str | None:
        path = shutil.which(self._binary)
        if not path:
            log.debug("tmux binary %r not found on PATH", self._binary)
        return path

    def _store(self, path: str | None) -> str | None:
        with self._lock:
            if self._result is _UNRESOLVED:
                self._result = path
                if path:
                    log.debug("Resolved tmux at %s", path)
                else:
                    log.info("tmux unavailable; interactive shell features disabled")
            result = self._result
        return result if isinstance(result, str) else None

    async def _find(self) -> str | None:
        path = self._lookup()
        if path:
            probe = await self._executor.execute([path, "-V"], timeout=self._probe_timeout)
            if not probe.success:
                log.debug("tmux probe failed for %s: %s", path, probe.error_message())
                path = None
        return self._store(path)

    def _find_sync(self) -> str | None:
        path = self._lookup()
        if path:
            probe = self._executor.execute_sync([path, "-V"], timeout=self._probe_timeout)
            if not probe.success:
                log.debug("tmux probe failed for %s: %s", path, probe.error_message())
                path = None
        return self._store(path)

    async def resolve(self) -> str | None:
        """Resolve tmux, sharing one in-flight lookup between concurrent callers."""
        if self.resolved:
            return self.cached_path()
        if self._task is None:
            self._task = asyncio.ensure_future(self._find())
        return await asyncio.shield(self._task)

    def resolve_sync(self) -> str | None:
        """Blocking variant of :meth:`resolve`."""
        if self.resolved:
            return self.cached_path()
        return self._find_sync()

    def start_background_check(self) -> None:
        """Begin resolution without waiting for it.

        Schedules a task on the running event loop, or a daemon thread when
        called from synchronous code. Calling it again is a no-op.
        """
        if self.resolved or self._task is not None or self._thread is not None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._thread = threading.Thread(
                target=self._find_sync, name="tmux-resolver", daemon=True
            )
            self._thread.start()
            return
        self._task = asyncio.ensure_future(self._find())

    def binary(self) -> str:
        """Path to invoke right now: the cached path, else the configured name."""
        return self.cached_path() or self._binary

    def reset(self) -> None:
        """Forget any cached result (test teardown)."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._thread = None
        self._result = _UNRESOLVED
