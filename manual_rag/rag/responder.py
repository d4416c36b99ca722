"""
Streaming response generation.

Drives a streaming chat completion and turns it into StreamEvents:
zero or more content fragments, then exactly one terminal event that is
either the summary (sources + full text) or an error.
"""

from contextlib import closing
from typing import Iterable, Iterator

from openai import OpenAI
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..config import rag_settings
from ..errors import StreamingFailure
from ..logging_config import logger
from .llm import get_llm_client
from .retriever import RetrievedDocument


class WireModel(BaseModel):
    """Base for payloads serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Source(WireModel):
    """Preview of a passage used to answer."""

    page_number: str
    content: str


class StreamEvent(WireModel):
    """One frame of the streaming protocol."""

    content: str | None = None
    done: bool
    sources: list[Source] | None = None
    full_response: str | None = None
    error: str | None = None

    @classmethod
    def fragment(cls, content: str) -> "StreamEvent":
        return cls(content=content, done=False)

    @classmethod
    def finished(cls, sources: list[Source], full_response: str) -> "StreamEvent":
        return cls(content="", done=True, sources=sources, full_response=full_response)

    @classmethod
    def failed(cls, message: str) -> "StreamEvent":
        return cls(error=message, done=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_sse(self) -> str:
        """Encode as a server-sent event frame."""
        return f"data: {self.model_dump_json(by_alias=True, exclude_none=True)}\n\n"


def build_sources(
    documents: Iterable[RetrievedDocument], preview_chars: int | None = None
) -> list[Source]:
    """Truncate each document to a short preview paired with its page number."""
    preview_chars = preview_chars or rag_settings.source_preview_chars
    return [
        Source(page_number=doc.page_number, content=doc.content[:preview_chars] + "...")
        for doc in documents
    ]


class StreamingResponder:
    """Streams chat completions as StreamEvents."""

    def __init__(
        self,
        client: OpenAI | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ):
        self._client = client
        self.model = model or rag_settings.openai_chat_model
        self.temperature = (
            rag_settings.openai_temperature if temperature is None else temperature
        )

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = get_llm_client()
        return self._client

    def stream_fragments(self, messages: list[dict]) -> Iterator[str]:
        """
        Yield text fragments in generation order.

        Closing the generator closes the upstream HTTP stream.
        """
        stream = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            stream=True,
        )

        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            stream.close()

    def respond(
        self,
        messages: list[dict],
        documents: list[RetrievedDocument],
    ) -> Iterator[StreamEvent]:
        """
        Stream a response.

        Args:
            messages: Assembled chat messages.
            documents: Documents the answer is grounded on (for the sources list).

        Yields:
            Fragment events, then exactly one terminal event.
        """
        parts = []

        try:
            with closing(self.stream_fragments(messages)) as fragments:
                for fragment in fragments:
                    parts.append(fragment)
                    yield StreamEvent.fragment(fragment)
        except Exception as e:
            failure = StreamingFailure(str(e) or type(e).__name__)
            logger.error(f"Error generating response: {failure}")
            yield StreamEvent.failed(str(failure))
            return

        full_response = "".join(parts)
        logger.info(
            f"Streamed {len(parts)} fragments ({len(full_response)} chars), "
            f"{len(documents)} sources"
        )
        yield StreamEvent.finished(build_sources(documents), full_response)
