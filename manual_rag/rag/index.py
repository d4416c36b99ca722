"""
Index builder.

Loads the manual, splits it into passages and makes sure the vector store
holds exactly those passages. A complete collection built from the same
document bytes is re-attached without extracting the PDF or computing any
embeddings; anything else is rebuilt from scratch.
"""

import hashlib
from pathlib import Path
from typing import Callable

from ..config import paths
from ..errors import IndexUnavailable
from ..logging_config import logger
from .embeddings import get_embeddings
from .parser import Passage, extract_pages, split_pages
from .store import CollectionInfo, VectorStore

EmbedTexts = Callable[[list[str]], list[list[float]]]


def compute_hash(file_path: Path) -> str:
    """Compute SHA256 hash of a file."""
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


class IndexBuilder:
    """Creates or re-attaches the persistent index for the manual."""

    def __init__(
        self,
        store: VectorStore | None = None,
        embed_texts: EmbedTexts | None = None,
        document_path: Path | None = None,
    ):
        self._store = store
        self.embed_texts = embed_texts or get_embeddings
        self.document_path = document_path or paths.document

    @property
    def store(self) -> VectorStore:
        if self._store is None:
            self._store = VectorStore()
        return self._store

    def load_passages(self) -> list[Passage]:
        """Extract the manual and split it into passages."""
        pages = extract_pages(self.document_path)
        passages = split_pages(pages)
        logger.info(f"Split into {len(passages)} chunks")
        return passages

    def document_hash(self) -> str:
        if not self.document_path.exists():
            raise IndexUnavailable(f"Document not found: {self.document_path}")
        try:
            return compute_hash(self.document_path)
        except OSError as e:
            raise IndexUnavailable(f"Could not read {self.document_path.name}: {e}") from e

    def build(self) -> VectorStore:
        """
        Attach to the index of the current document, or load the corpus and build it.

        Extraction only runs when the stored index is missing, partial, or was
        built from different document bytes.
        """
        document_hash = self.document_hash()
        info = self._describe()

        if self._can_attach(info, document_hash):
            return self._attach(info)

        logger.info("Starting PDF processing...")
        try:
            passages = self.load_passages()
        except IndexUnavailable:
            raise
        except Exception as e:
            raise IndexUnavailable(f"Could not load {self.document_path.name}: {e}") from e
        return self.ensure_index(passages, document_hash)

    def ensure_index(
        self, passages: list[Passage], document_hash: str | None = None
    ) -> VectorStore:
        """
        Attach to the existing index or create and load a new one.

        Idempotent: calling it again with the same passages attaches without
        re-embedding. A collection whose dimension does not match, whose point
        count differs from the count recorded at load time, or that was built
        from another document is rebuilt in full.

        Args:
            passages: Every passage of the document, in order.
            document_hash: SHA256 of the source document, recorded with the points.

        Returns:
            The vector store handle.

        Raises:
            IndexUnavailable: The embedding service or vector store failed.
        """
        store = self.store
        info = self._describe()

        if self._can_attach(info, document_hash, passages):
            return self._attach(info)

        if info.exists:
            logger.warning(
                f"⚠️ Index '{store.collection_name}' is incomplete or stale "
                f"(dim {info.dimension}, {info.points_count}/{info.passage_count} vectors). Rebuilding..."
            )
            try:
                store.drop()
            except Exception as e:
                raise IndexUnavailable(f"Could not drop stale index: {e}") from e

        logger.info(f"Creating index '{store.collection_name}' and upserting embeddings...")

        try:
            store.create()
        except Exception as e:
            raise IndexUnavailable(f"Vector store unreachable: {e}") from e

        try:
            embeddings = self.embed_texts([p.text for p in passages]) if passages else []
            store.upsert(passages, embeddings, document_hash=document_hash)
        except Exception as e:
            logger.error(f"❌ Index load failed, discarding partial index: {e}")
            self._discard(store)
            raise IndexUnavailable(f"Index build failed: {e}") from e

        logger.info(f"✅ Created index and upserted {len(passages)} embeddings")
        return store

    def _describe(self) -> CollectionInfo:
        try:
            return self.store.describe()
        except Exception as e:
            raise IndexUnavailable(f"Vector store unreachable: {e}") from e

    def _can_attach(
        self,
        info: CollectionInfo,
        document_hash: str | None,
        passages: list[Passage] | None = None,
    ) -> bool:
        if not info.exists or info.dimension != self.store.dimension:
            return False

        # An empty collection carries no manifest; only an empty corpus matches it.
        if info.points_count == 0:
            return passages is not None and not passages

        if not info.complete:
            return False

        if document_hash is not None:
            return info.document_hash == document_hash

        return passages is not None and info.passage_count == len(passages)

    def _attach(self, info: CollectionInfo) -> VectorStore:
        logger.info(
            f"Index '{self.store.collection_name}' already exists "
            f"({info.points_count} vectors), attaching"
        )
        return self.store

    def _discard(self, store: VectorStore):
        try:
            store.drop()
        except Exception as e:
            # The next build finds fewer points than recorded and rebuilds anyway.
            logger.warning(f"Could not drop partial index: {e}")
