"""Tests for the command-line entry point."""

import asyncio

from main import _ask
from manual_rag.rag.index import IndexBuilder
from manual_rag.rag.pipeline import RAGPipeline
from manual_rag.rag.responder import StreamingResponder

from .conftest import fake_embed, make_llm_client


def _pipeline(store, embedder, passages, llm_client, document_path):
    builder = IndexBuilder(store=store, embed_texts=embedder, document_path=document_path)
    builder.load_passages = lambda: passages
    return RAGPipeline(
        builder=builder,
        responder=StreamingResponder(client=llm_client),
        embed_query=fake_embed,
    )


class TestAsk:
    """Tests for the ask command."""

    def test_prints_answer_and_pages(self, store, embedder, sample_passages, manual_pdf, capsys):
        """Should stream the answer and list the cited pages."""
        pipeline = _pipeline(
            store, embedder, sample_passages, make_llm_client(["Grow ", "in strips."]), manual_pdf
        )

        exit_code = asyncio.run(_ask(pipeline, "What is strip intercropping?"))

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Grow in strips." in out
        assert "[p. 12]" in out

    def test_stream_error_exit_code(self, store, embedder, sample_passages, manual_pdf):
        """Should return 1 when the stream ends with an error."""
        llm_client = make_llm_client([], error=RuntimeError("quota exceeded"))
        pipeline = _pipeline(store, embedder, sample_passages, llm_client, manual_pdf)

        assert asyncio.run(_ask(pipeline, "q")) == 1
