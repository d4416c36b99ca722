"""Shared fixtures for tests."""

import math
import re
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from qdrant_client import QdrantClient

from manual_rag.rag.parser import PageText, split_pages
from manual_rag.rag.store import VectorStore

DIMENSION = 64


def fake_embed(text: str) -> list[float]:
    """Deterministic bag-of-words embedding: shared words mean similar vectors."""
    vector = [0.0] * DIMENSION
    vector[0] = 0.1
    for word in re.findall(r"[a-z]+", text.lower()):
        bucket = 1 + sum(ord(c) * (i + 1) for i, c in enumerate(word)) % (DIMENSION - 1)
        vector[bucket] += 1.0
    norm = math.sqrt(sum(v * v for v in vector))
    return [v / norm for v in vector]


class CountingEmbedder:
    """Batch embedder that records how many texts it was asked to embed."""

    def __init__(self):
        self.calls = 0
        self.texts = 0

    def __call__(self, texts: list[str]) -> list[list[float]]:
        self.calls += 1
        self.texts += len(texts)
        return [fake_embed(t) for t in texts]


class FakeStream:
    """Stands in for an OpenAI streaming response."""

    def __init__(self, fragments, error: Exception | None = None):
        self.fragments = fragments
        self.error = error
        self.closed = False

    def __iter__(self):
        for fragment in self.fragments:
            yield SimpleNamespace(
                choices=[SimpleNamespace(delta=SimpleNamespace(content=fragment))]
            )
        if self.error:
            raise self.error

    def close(self):
        self.closed = True


def make_llm_client(fragments, error: Exception | None = None):
    """A mock OpenAI client whose chat completions stream the given fragments."""
    client = MagicMock()
    stream = FakeStream(fragments, error)
    client.chat.completions.create.return_value = stream
    client.stream = stream
    return client


@pytest.fixture
def qdrant():
    """In-memory Qdrant instance."""
    client = QdrantClient(location=":memory:")
    yield client
    client.close()


@pytest.fixture
def store(qdrant):
    return VectorStore(client=qdrant, collection_name="test_manual", dimension=DIMENSION)


@pytest.fixture
def embedder():
    return CountingEmbedder()


@pytest.fixture
def sample_pages():
    """Pages in the shape produced by the text-layer extractor."""
    return [
        PageText(
            text=(
                "Strip intercropping is the practice of growing two or more crops "
                "in alternating strips wide enough for separate management. "
                "Maize strips alternate with legume strips such as soybean or groundnut."
            ),
            metadata={"source": "manual.pdf", "loc": {"pageNumber": 12}},
        ),
        PageText(
            text=(
                "Conservation agriculture rests on minimum soil disturbance, "
                "permanent soil cover with crop residues, and crop rotation."
            ),
            metadata={"source": "manual.pdf", "loc": {"pageNumber": 13}},
        ),
        PageText(
            text=(
                "Doubled-up legume systems plant pigeonpea with groundnut or soybean "
                "to improve soil fertility and household nutrition."
            ),
            metadata={"source": "manual.pdf", "loc": {"pageNumber": 14}},
        ),
    ]


@pytest.fixture
def sample_passages(sample_pages):
    return split_pages(sample_pages, chunk_size=1000, overlap=200)


@pytest.fixture
def manual_pdf(tmp_path):
    """A document file for the builder to hash; extraction is stubbed in tests."""
    pdf = tmp_path / "SIFAZ_manual.pdf"
    pdf.write_bytes(b"%PDF-1.4 strip intercropping manual")
    return pdf
