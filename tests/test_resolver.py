"""Tests for tmux binary resolution."""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

import pytest

from shellwatch.tmux import resolver as resolver_module
from shellwatch.tmux.resolver import TmuxPathResolver
from tests.utils import FakeExecutor, fail, ok


@pytest.fixture
def which(monkeypatch: pytest.MonkeyPatch) -> Mock:
    mock = Mock(return_value="/usr/bin/tmux")
    monkeypatch.setattr(resolver_module.shutil, "which", mock)
    return mock


class TestResolve:
    """Test async resolution and caching."""

    @pytest.mark.asyncio
    async def test_found_and_verified(self, which: Mock) -> None:
        executor = FakeExecutor(lambda argv: ok("tmux 3.4\n"))
        resolver = TmuxPathResolver(executor=executor)

        assert await resolver.resolve() == "/usr/bin/tmux"
        assert executor.calls == [["/usr/bin/tmux", "-V"]]
        assert resolver.resolved
        assert resolver.binary() == "/usr/bin/tmux"

    @pytest.mark.asyncio
    async def test_missing_is_cached(self, which: Mock) -> None:
        which.return_value = None
        executor = FakeExecutor()
        resolver = TmuxPathResolver(executor=executor)

        assert await resolver.resolve() is None
        assert await resolver.resolve() is None
        assert which.call_count == 1
        assert executor.calls == []
        assert resolver.resolved

    @pytest.mark.asyncio
    async def test_failed_probe_means_unavailable(self, which: Mock) -> None:
        resolver = TmuxPathResolver(executor=FakeExecutor(lambda argv: fail("bad binary")))

        assert await resolver.resolve() is None
        assert resolver.cached_path() is None

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_lookup(self, which: Mock) -> None:
        executor = FakeExecutor(lambda argv: ok("tmux 3.4"))
        resolver = TmuxPathResolver(executor=executor)

        results = await asyncio.gather(resolver.resolve(), resolver.resolve(), resolver.resolve())

        assert results == ["/usr/bin/tmux"] * 3
        assert which.call_count == 1
        assert len(executor.calls) == 1

    @pytest.mark.asyncio
    async def test_explicit_binary_is_looked_up(self, which: Mock) -> None:
        resolver = TmuxPathResolver(binary="/opt/tmux", executor=FakeExecutor())
        await resolver.resolve()
        which.assert_called_once_with("/opt/tmux")


class TestResolveSync:
    """Test blocking resolution and background checks."""

    def test_resolve_sync(self, which: Mock) -> None:
        executor = FakeExecutor(lambda argv: ok("tmux 3.4"))
        resolver = TmuxPathResolver(executor=executor)

        assert resolver.resolve_sync() == "/usr/bin/tmux"
        assert resolver.resolve_sync() == "/usr/bin/tmux"
        assert len(executor.calls) == 1

    def test_binary_before_resolution_is_configured_name(self, which: Mock) -> None:
        resolver = TmuxPathResolver(binary="tmux-next", executor=FakeExecutor())
        assert not resolver.resolved
        assert resolver.binary() == "tmux-next"

    def test_background_check_without_loop_uses_thread(self, which: Mock) -> None:
        resolver = TmuxPathResolver(executor=FakeExecutor(lambda argv: ok("tmux 3.4")))

        resolver.start_background_check()
        assert resolver._thread is not None
        resolver._thread.join(timeout=5)

        assert resolver.cached_path() == "/usr/bin/tmux"

    @pytest.mark.asyncio
    async def test_background_check_inside_loop_uses_task(self, which: Mock) -> None:
        resolver = TmuxPathResolver(executor=FakeExecutor(lambda argv: ok("tmux 3.4")))

        resolver.start_background_check()
        resolver.start_background_check()

        assert await resolver.resolve() == "/usr/bin/tmux"
        assert which.call_count == 1

    def test_reset_forgets_result(self, which: Mock) -> None:
        resolver = TmuxPathResolver(executor=FakeExecutor(lambda argv: ok("tmux 3.4")))
        resolver.resolve_sync()

        resolver.reset()

        assert not resolver.resolved
        which.return_value = None
        assert resolver.resolve_sync() is None
