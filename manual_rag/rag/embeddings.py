"""
Embeddings wrapper.

Generates vector embeddings for passages and queries.
Supports both OpenAI (batch) and OpenAI-compatible local servers (one-by-one).
"""

from openai import OpenAI

from ..config import rag_settings
from ..logging_config import logger
from .llm import get_llm_client


def check_dimension(vector: list[float]) -> list[float]:
    """Reject vectors whose length differs from the index dimension."""
    expected = rag_settings.openai_embedding_dimension
    if len(vector) != expected:
        raise ValueError(
            f"{rag_settings.openai_embedding_model} returned {len(vector)}-dim vectors, "
            f"index expects {expected} (check OPENAI_EMBEDDING_DIMENSION)"
        )
    return vector


def get_embeddings(texts: list[str], client: OpenAI | None = None) -> list[list[float]]:
    """
    Generate embeddings for a list of texts.

    Args:
        texts: List of text strings to embed.
        client: OpenAI client to use. Created from settings if omitted.

    Returns:
        List of embedding vectors, in input order.
    """
    client = client or get_llm_client()
    one_by_one = bool(rag_settings.openai_base_url)

    logger.info(f"Generating embeddings for {len(texts)} chunks...")

    all_embeddings = []

    if one_by_one:
        for i, text in enumerate(texts, 1):
            response = client.embeddings.create(
                model=rag_settings.openai_embedding_model,
                input=text,
            )
            all_embeddings.append(response.data[0].embedding)

            if i % 10 == 0 or i == len(texts):
                logger.info(f"Embedded {i}/{len(texts)}")
    else:
        batch_size = rag_settings.embedding_batch_size
        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]

            response = client.embeddings.create(
                model=rag_settings.openai_embedding_model,
                input=batch,
            )

            batch_embeddings = [item.embedding for item in response.data]
            all_embeddings.extend(batch_embeddings)

            logger.info(
                f"Embedded batch {i // batch_size + 1}/{(len(texts) - 1) // batch_size + 1}"
            )

    for vector in all_embeddings:
        check_dimension(vector)

    return all_embeddings


def get_embedding(text: str, client: OpenAI | None = None) -> list[float]:
    """
    Generate embedding for a single text.

    Args:
        text: Text string to embed.
        client: OpenAI client to use. Created from settings if omitted.

    Returns:
        Embedding vector.
    """
    client = client or get_llm_client()

    response = client.embeddings.create(
        model=rag_settings.openai_embedding_model,
        input=text,
    )

    return check_dimension(response.data[0].embedding)
