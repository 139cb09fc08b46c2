"""Error taxonomy of the assistant core.

Failures the model can react to (tool input, tool handler, retrieval) are
converted into tool result data by the executor. Only TransportError ends a
chat request with a caller-visible error.
"""


class AssistantError(Exception):
    """Base class for all assistant errors."""


class ToolExecutionError(AssistantError):
    """A tool handler failed in a way the model should be told about (e.g. duplicate account)."""


class EmbeddingProviderError(AssistantError):
    """The embedding provider or the fallback embedder could not produce a vector."""


class RetrievalError(AssistantError):
    """The document index could not be read."""


class IngestError(AssistantError):
    """A document could not be added to the index."""


class DuplicateToolCallError(AssistantError):
    """Two tool-call requests in one message share the same tool_call_id."""


class TransportError(AssistantError):
    """The language model could not be reached or refused the request.

    Attributes:
        retryable (bool): Whether repeating the same request may succeed.
        status_code (int | None): HTTP status, if a response was received.
    """

    def __init__(self, message: str, retryable: bool = True, status_code: int | None = None) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class ChatAccessError(AssistantError):
    """A session tried to read or continue a chat owned by another user."""
