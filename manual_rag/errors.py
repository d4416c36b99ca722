"""
Error taxonomy for the manual assistant.

- ValidationError: a required request field is missing (client error, never retried).
- IndexUnavailable: embedding service or vector store unreachable while building the index.
- RetrievalDegraded: retrieval failed; recovered locally with an empty context.
- StreamingFailure: the completion call failed while a response was streaming.
"""


class ManualRAGError(Exception):
    """Base class for all assistant errors."""


class ValidationError(ManualRAGError):
    """Raised when a request is missing a required field."""


class IndexUnavailable(ManualRAGError):
    """Raised when the vector index cannot be built or attached."""


class RetrievalDegraded(ManualRAGError):
    """Raised when a similarity search fails."""


class StreamingFailure(ManualRAGError):
    """Raised when the completion stream breaks."""
