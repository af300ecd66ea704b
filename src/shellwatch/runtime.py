"""Process-wide wiring of resolver, client, registry and detectors.

A ShellRuntime owns the state that would otherwise live in module globals:
the cached tmux path, the session registry and its storage. Hosts create
one per process (or per test) and pass it around explicitly.
"""

from __future__ import annotations

from shellwatch.config import Config, load_config
from shellwatch.detection.formatting import diagnose_timeout, diagnose_timeout_sync
from shellwatch.detection.result import DetectionResult, StallResult
from shellwatch.detection.stall import detect_output_stall, detect_output_stall_sync
from shellwatch.detection.tty import LinuxProcDetector, ProcReader
from shellwatch.errors import TmuxNotFoundError
from shellwatch.logging import get_logger
from shellwatch.registry import JsonFileStore, KeyValueStore, SessionRegistry
from shellwatch.terminal.interact import TmuxCommandTool
from shellwatch.terminal.result import InteractResult
from shellwatch.terminal.subprocess_executor import SubprocessExecutor
from shellwatch.tmux.client import TmuxClient
from shellwatch.tmux.resolver import TmuxPathResolver

log = get_logger("runtime")


class ShellRuntime:
    """Holds every long-lived shellwatch component for one host process.

    Example:
        >>> runtime = ShellRuntime.from_config()
        >>> runtime.start()
        >>> result = await runtime.run_tmux("new-session -d -s cea-web", "conv-1")
        >>> await runtime.cleanup_all("conv-1")
        >>> runtime.close()
    """

    def __init__(
        self,
        config: Config | None = None,
        store: KeyValueStore | None = None,
        executor: SubprocessExecutor | None = None,
        proc_reader: ProcReader | None = None,
    ) -> None:
        """Initialize the runtime.

        Args:
            config: Loaded configuration. Defaults to built-in defaults.
            store: Registry storage. Defaults to JSON files in the configured directory.
            executor: Subprocess executor shared by every tmux and ps call.
            proc_reader: /proc reader for TTY detection.
        """
        self.config = config or Config()
        self.executor = executor or SubprocessExecutor(env={"LANG": "en_US.UTF-8"})
        self.resolver = TmuxPathResolver(
            binary=self.config.tmux.binary,
            probe_timeout=self.config.tmux.probe_timeout,
            executor=self.executor,
        )
        self.client = TmuxClient(
            resolver=self.resolver,
            executor=self.executor,
            probe_timeout=self.config.tmux.probe_timeout,
        )
        self.registry = SessionRegistry(
            store or JsonFileStore(self.config.registry.storage_dir),
            prefix=self.config.registry.prefix,
            killer=self.client.kill_session,
            sync_killer=self.client.kill_session_sync,
        )
        self.detector = LinuxProcDetector(self.client, proc_reader=proc_reader)
        self.tool = TmuxCommandTool(
            self.client,
            self.registry,
            command_timeout=self.config.tmux.command_timeout,
        )
        self._started = False

    @classmethod
    def from_config(cls, project_root: str | None = None) -> ShellRuntime:
        """Build a runtime from the merged configuration files."""
        return cls(load_config(project_root=project_root))

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Kick off tmux resolution in the background. Idempotent."""
        if self._started:
            return
        self._started = True
        self.resolver.start_background_check()
        log.debug("Runtime started (prefix=%s)", self.registry.prefix)

    def close(self) -> None:
        """Forget cached tmux resolution and in-memory registry state."""
        self.resolver.reset()
        for session_id in list(self.registry.cached_session_ids()):
            self.registry.evict(session_id)
        self._started = False

    # -- tmux availability ----------------------------------------------------

    async def tmux_path(self) -> str | None:
        return await self.resolver.resolve()

    def require_tmux(self) -> str:
        """Resolve tmux synchronously.

        Raises:
            TmuxNotFoundError: If tmux is missing or fails its version probe.
        """
        path = self.resolver.resolve_sync()
        if path is None:
            raise TmuxNotFoundError(self.config.tmux.binary or "tmux")
        return path

    # -- tool entry points ------------------------------------------------------

    async def run_tmux(self, tmux_command: str, session_id: str | None = None) -> InteractResult:
        return await self.tool.run(tmux_command, session_id=session_id)

    def run_tmux_sync(self, tmux_command: str, session_id: str | None = None) -> InteractResult:
        return self.tool.run_sync(tmux_command, session_id=session_id)

    async def send_keystrokes(self, target: str, keystrokes: str) -> InteractResult:
        return await self.tool.send_keystrokes(target, keystrokes)

    # -- detection ------------------------------------------------------------

    async def check_output_stall(self, session_label: str) -> StallResult:
        stall = self.config.stall
        return await detect_output_stall(
            self.client, session_label, stall.sample_count, stall.interval_ms
        )

    def check_output_stall_sync(self, session_label: str) -> StallResult:
        stall = self.config.stall
        return detect_output_stall_sync(
            self.client, session_label, stall.sample_count, stall.interval_ms
        )

    async def check_input_wait(self, session_label: str) -> DetectionResult | None:
        return await self.detector.detect(session_label)

    async def diagnose_timeout(self, session_label: str, timeout_ms: int) -> str:
        """Run both detectors once and build the timeout message."""
        return await diagnose_timeout(
            self.client,
            session_label,
            timeout_ms,
            detector=self.detector,
            sample_count=self.config.stall.sample_count,
            interval_ms=self.config.stall.interval_ms,
        )

    def diagnose_timeout_sync(self, session_label: str, timeout_ms: int) -> str:
        return diagnose_timeout_sync(
            self.client,
            session_label,
            timeout_ms,
            detector=self.detector,
            sample_count=self.config.stall.sample_count,
            interval_ms=self.config.stall.interval_ms,
        )

    # -- registry maintenance ---------------------------------------------------

    async def cleanup_all(self, session_id: str) -> list[str]:
        """Kill every session tracked for ``session_id`` and delete its record."""
        return await self.registry.cleanup_all(session_id)

    def cleanup_all_sync(self, session_id: str) -> list[str]:
        return self.registry.cleanup_all_sync(session_id)

    async def reconcile(self, session_id: str) -> list[str]:
        """Drop tracked names that tmux no longer lists.

        Raises:
            TmuxError: If tmux could not list its sessions.
        """
        live = await self.client.list_sessions()
        return self.registry.reconcile(session_id, live)

    def reconcile_sync(self, session_id: str) -> list[str]:
        live = self.client.list_sessions_sync()
        return self.registry.reconcile(session_id, live)
