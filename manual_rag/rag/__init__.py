"""
RAG (Retrieval-Augmented Generation) module for the SIFAZ manual.

This module provides:
- PDF text extraction and chunking
- Text embeddings
- Vector storage via Qdrant
- Index building with single-flight readiness tracking
- Retrieval, prompt assembly and streamed answers
"""

from .index import IndexBuilder
from .pipeline import RAGPipeline
from .readiness import IndexStatus, ReadinessTracker
from .responder import StreamEvent, StreamingResponder
from .retriever import RetrievedDocument, Retriever
from .store import VectorStore

__all__ = [
    "IndexBuilder",
    "RAGPipeline",
    "IndexStatus",
    "ReadinessTracker",
    "StreamEvent",
    "StreamingResponder",
    "RetrievedDocument",
    "Retriever",
    "VectorStore",
]
