"""
The assistant pipeline: readiness -> retrieval -> prompt -> streaming.

One RAGPipeline is created per process and handed to request handlers.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Iterator

from ..config import rag_settings
from ..logging_config import logger
from .index import IndexBuilder
from .prompt import assemble_messages
from .readiness import ReadinessTracker
from .responder import StreamEvent, StreamingResponder
from .retriever import RetrievedDocument, Retriever
from .store import VectorStore


class RAGPipeline:
    """Service object wiring the index, retriever and responder together."""

    def __init__(
        self,
        builder: IndexBuilder | None = None,
        responder: StreamingResponder | None = None,
        embed_query: Callable[[str], list[float]] | None = None,
        top_k: int | None = None,
    ):
        self.builder = builder or IndexBuilder()
        self.tracker = ReadinessTracker(self.builder.build)
        self.responder = responder or StreamingResponder()
        self.embed_query = embed_query
        self.top_k = rag_settings.top_k if top_k is None else top_k

    async def initialize(self) -> VectorStore:
        """Build or attach the index (idempotent)."""
        return await self.tracker.ensure_ready()

    def status(self) -> dict:
        state = self.tracker.state
        return {
            "isReady": self.tracker.is_ready,
            "hasIndex": self.tracker.has_index,
            "status": state.status.value,
            "error": state.error,
            "lastTransition": state.updated_at.isoformat(),
            "documentFound": self.builder.document_path.exists(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def retrieve(self, query: str, k: int | None = None) -> list[RetrievedDocument]:
        """Top-k passages for a query, building the index on first use."""
        store = await self.tracker.ensure_ready()
        retriever = Retriever(store, embed_query=self.embed_query)
        return await asyncio.to_thread(retriever.retrieve, query, self.top_k if k is None else k)

    async def prepare(
        self, query: str, history: list[dict]
    ) -> tuple[list[dict], list[RetrievedDocument]]:
        """Retrieve context and assemble the chat messages for a query."""
        documents = await self.retrieve(query)
        messages = assemble_messages(query, history, documents)
        logger.debug(f"Prompt: {len(messages)} messages, {len(documents)} context passages")
        return messages, documents

    def stream(
        self, messages: list[dict], documents: list[RetrievedDocument]
    ) -> Iterator[StreamEvent]:
        return self.responder.respond(messages, documents)
