"""Tests for the readiness tracker."""

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest

from manual_rag.errors import IndexUnavailable
from manual_rag.rag.readiness import IndexStatus, ReadinessTracker


class SlowBuild:
    """Build callable that takes a while and counts invocations."""

    def __init__(self, failures: int = 0, delay: float = 0.05):
        self.calls = 0
        self.failures = failures
        self.delay = delay
        self.handle = MagicMock(name="store")
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            attempt = self.calls
        time.sleep(self.delay)
        if attempt <= self.failures:
            raise IndexUnavailable("vector store unreachable")
        return self.handle


class TestReadinessTracker:
    """Tests for ReadinessTracker."""

    def test_initial_state(self):
        """Should start UNINITIALIZED without a handle."""
        tracker = ReadinessTracker(SlowBuild())

        assert tracker.state.status is IndexStatus.UNINITIALIZED
        assert tracker.is_ready is False
        assert tracker.has_index is False

    @pytest.mark.asyncio
    async def test_first_call_builds_and_becomes_ready(self):
        """Should build once and expose the handle."""
        build = SlowBuild()
        tracker = ReadinessTracker(build)

        handle = await tracker.ensure_ready()

        assert handle is build.handle
        assert tracker.state.status is IndexStatus.READY
        assert tracker.has_index is True

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_build(self):
        """Should run exactly one build for N simultaneous callers."""
        build = SlowBuild(delay=0.1)
        tracker = ReadinessTracker(build)

        handles = await asyncio.gather(*(tracker.ensure_ready() for _ in range(10)))

        assert build.calls == 1
        assert all(h is build.handle for h in handles)

    @pytest.mark.asyncio
    async def test_ready_is_not_rebuilt(self):
        """Should not build again once READY."""
        build = SlowBuild(delay=0)
        tracker = ReadinessTracker(build)

        await tracker.ensure_ready()
        await tracker.ensure_ready()

        assert build.calls == 1

    @pytest.mark.asyncio
    async def test_status_is_building_while_in_flight(self):
        """Should report BUILDING while the build runs."""
        tracker = ReadinessTracker(SlowBuild(delay=0.1))

        task = asyncio.create_task(tracker.ensure_ready())
        await asyncio.sleep(0.02)

        assert tracker.state.status is IndexStatus.BUILDING
        await task

    @pytest.mark.asyncio
    async def test_failure_is_soft_and_retried(self):
        """Should mark FAILED, then rebuild on the next request."""
        build = SlowBuild(failures=1, delay=0)
        tracker = ReadinessTracker(build)

        with pytest.raises(IndexUnavailable):
            await tracker.ensure_ready()

        assert tracker.state.status is IndexStatus.FAILED
        assert tracker.state.error == "vector store unreachable"

        handle = await tracker.ensure_ready()

        assert handle is build.handle
        assert tracker.state.status is IndexStatus.READY
        assert tracker.state.error is None
        assert build.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_failure(self):
        """Should surface a failed build to every waiter without rebuilding."""
        build = SlowBuild(failures=5, delay=0.05)
        tracker = ReadinessTracker(build)

        results = await asyncio.gather(
            *(tracker.ensure_ready() for _ in range(4)), return_exceptions=True
        )

        assert build.calls == 1
        assert all(isinstance(r, IndexUnavailable) for r in results)

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_index_unavailable(self):
        """Should wrap arbitrary build errors."""
        def broken():
            raise ConnectionError("refused")

        tracker = ReadinessTracker(broken)

        with pytest.raises(IndexUnavailable, match="refused"):
            await tracker.ensure_ready()
