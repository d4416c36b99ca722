"""
Index readiness tracking.

UNINITIALIZED -> BUILDING -> READY, or BUILDING -> FAILED. FAILED is soft:
the next request starts a new build. READY is kept for the process lifetime.

Concurrent callers share one in-flight build (single-flight), so the
vector store is never written by two builds at once.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from ..errors import IndexUnavailable
from ..logging_config import logger
from .store import VectorStore


class IndexStatus(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    BUILDING = "BUILDING"
    READY = "READY"
    FAILED = "FAILED"


@dataclass
class IndexState:
    status: IndexStatus = IndexStatus.UNINITIALIZED
    handle: VectorStore | None = None
    error: str | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ReadinessTracker:
    """Owns the index state and runs the build at most once at a time."""

    def __init__(self, build: Callable[[], VectorStore]):
        self._build = build
        self.state = IndexState()
        self._inflight: asyncio.Task | None = None

    @property
    def is_ready(self) -> bool:
        return self.state.status is IndexStatus.READY

    @property
    def has_index(self) -> bool:
        return self.state.handle is not None

    def _transition(self, status: IndexStatus, handle=None, error: str | None = None):
        logger.debug(f"Index state {self.state.status.value} -> {status.value}")
        self.state.status = status
        self.state.handle = handle
        self.state.error = error
        self.state.updated_at = datetime.now(timezone.utc)

    async def ensure_ready(self) -> VectorStore:
        """
        Return the index handle, building it first if needed.

        Raises:
            IndexUnavailable: The build failed. A later call retries.
        """
        if self.is_ready:
            return self.state.handle

        if self._inflight is None:
            self._inflight = asyncio.create_task(self._run_build())

        # Shielded so one cancelled caller does not abort the shared build.
        return await asyncio.shield(self._inflight)

    async def _run_build(self) -> VectorStore:
        self._transition(IndexStatus.BUILDING)

        try:
            handle = await asyncio.to_thread(self._build)
        except Exception as e:
            logger.error(f"❌ Index build failed: {e}")
            self._transition(IndexStatus.FAILED, error=str(e))
            if isinstance(e, IndexUnavailable):
                raise
            raise IndexUnavailable(str(e)) from e
        else:
            self._transition(IndexStatus.READY, handle=handle)
            logger.info("✅ Index ready")
            return handle
        finally:
            self._inflight = None
