"""
Passage retrieval with page provenance.
"""

from dataclasses import dataclass, field
from typing import Callable

from ..config import rag_settings
from ..errors import RetrievalDegraded
from ..logging_config import logger
from .embeddings import get_embedding
from .store import SearchHit, VectorStore

UNKNOWN_PAGE = "Unknown"


@dataclass
class RetrievedDocument:
    """A passage returned for one query, with its resolved page number."""

    content: str
    page_number: str
    rank: int
    score: float = 0.0
    metadata: dict = field(default_factory=dict)


def _as_page(value) -> str:
    text = str(value).strip()
    return text or UNKNOWN_PAGE


def resolve_page_number(metadata: dict, position: int) -> str:
    """
    Resolve the page number of a hit. First match wins:

    1. "loc.pageNumber" (text-layer extraction, already 1-based)
    2. "page" (vision extraction, zero-based, so +1)
    3. "pageNumber" as-is
    4. the 1-based position of the hit in the result list
    """
    if metadata.get("loc.pageNumber") is not None:
        return _as_page(metadata["loc.pageNumber"])

    page = metadata.get("page")
    if page is not None:
        try:
            return str(int(page) + 1)
        except (TypeError, ValueError):
            return _as_page(page)

    if metadata.get("pageNumber") is not None:
        return _as_page(metadata["pageNumber"])

    return str(position + 1)


class Retriever:
    """Top-k similarity search over the manual index."""

    def __init__(
        self,
        store: VectorStore,
        embed_query: Callable[[str], list[float]] | None = None,
    ):
        self.store = store
        self.embed_query = embed_query or get_embedding

    def search(self, query: str, k: int) -> list[SearchHit]:
        """Embed the query and search; failures raise RetrievalDegraded."""
        try:
            vector = self.embed_query(query)
            hits = self.store.search(vector, top_k=k)
        except Exception as e:
            raise RetrievalDegraded(f"Similarity search failed: {e}") from e

        # Highest score first; equal scores keep the store's order.
        return sorted(hits, key=lambda h: -h.score)[:k]

    def retrieve(self, query: str, k: int | None = None) -> list[RetrievedDocument]:
        """
        Return at most k passages ranked by similarity.

        Errors degrade to an empty list so that generation can still answer
        from the base instructions.
        """
        k = rag_settings.top_k if k is None else k
        if k <= 0:
            return []

        try:
            hits = self.search(query, k)
        except RetrievalDegraded as e:
            logger.warning(f"Retrieval degraded, answering without context: {e}")
            return []

        logger.info(f"Retrieved {len(hits)} relevant documents for query: \"{query}\"")

        return [
            RetrievedDocument(
                content=hit.text,
                page_number=resolve_page_number(hit.metadata, rank),
                rank=rank,
                score=hit.score,
                metadata=hit.metadata,
            )
            for rank, hit in enumerate(hits)
        ]
