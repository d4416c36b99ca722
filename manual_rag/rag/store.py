"""
Qdrant Vector Store wrapper.

Manages the collection holding the manual's passages.
"""

import uuid
from dataclasses import dataclass

from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from ..config import rag_settings
from ..logging_config import logger
from .parser import Passage

UPSERT_BATCH_SIZE = 100


@dataclass
class SearchHit:
    """A single search result."""

    id: str
    text: str
    metadata: dict
    score: float


@dataclass
class CollectionInfo:
    """What the vector store currently holds under the collection name."""

    exists: bool
    points_count: int = 0
    dimension: int | None = None
    document_hash: str | None = None
    passage_count: int | None = None

    @property
    def complete(self) -> bool:
        """Every passage recorded at load time is present."""
        return self.passage_count is not None and self.points_count == self.passage_count


def create_qdrant_client() -> QdrantClient:
    """Build a Qdrant client from settings (in-memory, URL or host/port)."""
    if rag_settings.qdrant_location:
        return QdrantClient(location=rag_settings.qdrant_location)
    if rag_settings.qdrant_url:
        return QdrantClient(url=rag_settings.qdrant_url, api_key=rag_settings.qdrant_api_key)
    return QdrantClient(
        host=rag_settings.qdrant_host,
        port=rag_settings.qdrant_port,
        api_key=rag_settings.qdrant_api_key,
    )


def flatten_metadata(metadata: dict, prefix: str = "") -> dict:
    """Flatten nested metadata into dotted keys: {"loc": {"pageNumber": 3}} -> {"loc.pageNumber": 3}."""
    flat = {}
    for key, value in metadata.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(flatten_metadata(value, f"{name}."))
        else:
            flat[name] = value
    return flat


class VectorStore:
    """Qdrant vector store for the manual index."""

    def __init__(
        self,
        client: QdrantClient | None = None,
        collection_name: str | None = None,
        dimension: int | None = None,
    ):
        self.client = client or create_qdrant_client()
        self.collection_name = collection_name or rag_settings.collection_name
        self.dimension = dimension or rag_settings.openai_embedding_dimension

    def point_id(self, passage: Passage) -> str:
        """Deterministic point id, so reloading a passage overwrites it."""
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{self.collection_name}/{passage.id}"))

    def describe(self) -> CollectionInfo:
        if not self.client.collection_exists(self.collection_name):
            return CollectionInfo(exists=False)

        info = self.client.get_collection(self.collection_name)
        points, _ = self.client.scroll(
            collection_name=self.collection_name,
            limit=1,
            with_payload=True,
            with_vectors=False,
        )
        manifest = points[0].payload if points else {}

        return CollectionInfo(
            exists=True,
            points_count=self.count(),
            dimension=info.config.params.vectors.size,
            document_hash=manifest.get("document_hash"),
            passage_count=manifest.get("passage_count"),
        )

    def create(self):
        logger.info(
            f"Creating collection: {self.collection_name} with dim {self.dimension}"
        )
        self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=self.dimension, distance=Distance.COSINE),
        )

    def drop(self):
        self.client.delete_collection(self.collection_name)
        logger.info(f"Deleted collection {self.collection_name}")

    def count(self) -> int:
        return self.client.count(self.collection_name, exact=True).count

    def upsert(
        self,
        passages: list[Passage],
        embeddings: list[list[float]],
        document_hash: str | None = None,
    ) -> int:
        """
        Insert or update passage vectors in the store.

        Every point also records the document hash and the total passage
        count, so a later process can tell a complete load from a partial one.

        Args:
            passages: Passages to store.
            embeddings: Corresponding embedding vectors.
            document_hash: SHA256 of the source document.

        Returns:
            Number of points written.
        """
        if len(passages) != len(embeddings):
            raise ValueError(
                f"Got {len(embeddings)} embeddings for {len(passages)} passages"
            )

        points = [
            PointStruct(
                id=self.point_id(passage),
                vector=embedding,
                payload={
                    "text": passage.text,
                    "passage_id": passage.id,
                    "ordinal": passage.ordinal,
                    "metadata": flatten_metadata(passage.metadata),
                    "document_hash": document_hash,
                    "passage_count": len(passages),
                },
            )
            for passage, embedding in zip(passages, embeddings)
        ]

        for i in range(0, len(points), UPSERT_BATCH_SIZE):
            batch = points[i : i + UPSERT_BATCH_SIZE]
            self.client.upsert(
                collection_name=self.collection_name,
                points=batch,
                wait=True,
            )
            logger.info(f"Upserted {i + len(batch)}/{len(points)} passages")

        return len(points)

    def search(self, query_embedding: list[float], top_k: int = 5) -> list[SearchHit]:
        """
        Search for similar vectors.

        Args:
            query_embedding: The query vector.
            top_k: Number of results to return.

        Returns:
            Hits as returned by Qdrant (highest score first).
        """
        results = self.client.query_points(
            collection_name=self.collection_name,
            query=query_embedding,
            limit=top_k,
            with_payload=True,
        ).points

        return [
            SearchHit(
                id=str(r.id),
                text=r.payload["text"],
                metadata=r.payload.get("metadata", {}),
                score=r.score,
            )
            for r in results
        ]
