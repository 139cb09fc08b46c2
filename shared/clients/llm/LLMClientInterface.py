from abc import abstractmethod
from typing import AsyncIterator

import httpx

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.errors.errors import TransportError
from shared.helper.HelperConfig import HelperConfig
from shared.models.events import ModelEvent


class LLMClientInterface(HttpClientInterface):
    """Streaming chat client with tool calling.

    Messages are passed in OpenAI chat format (system/user/assistant/tool roles,
    assistant "tool_calls" with JSON-string arguments); engines translate to their
    own wire format in get_chat_payload().
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default=self._get_default_chat_model())

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        """Returns the model used when LLM_CHAT_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, system_prompt: str, messages: list[dict], tools: list[dict]) -> dict:
        """Build the backend-specific body of a streaming chat request.

        Args:
            system_prompt (str): The system prompt of the resolved capability.
            messages (list[dict]): OpenAI-format transcript messages.
            tools (list[dict]): Function schemas ({"name", "description", "parameters"}).

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ############ STREAM PARSING ##############
    ##########################################

    @abstractmethod
    def parse_stream_line(self, line: str, state: dict) -> list[ModelEvent]:
        """Translate one line of the response stream into model events.

        Args:
            line (str): A non-empty line of the streamed response body.
            state (dict): Per-request scratch space for fragments spanning lines.

        Returns:
            list[ModelEvent]: Zero or more text deltas and tool-call requests.

        Raises:
            TransportError: If the line reports a backend error.
        """
        pass

    def flush_stream_state(self, state: dict) -> list[ModelEvent]:
        """Emit events still buffered in the stream state when the stream ends."""
        return []

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_stream_chat(self, system_prompt: str, messages: list[dict], tools: list[dict]) -> AsyncIterator[ModelEvent]:
        """Stream one model turn.

        Yields:
            ModelEvent: Text deltas and complete tool-call requests, in stream order.

        Raises:
            TransportError: If the backend is unreachable, answers with an error
                status, or the connection breaks mid-stream. 429 and 5xx
                statuses and network failures are retryable.
        """
        client = self.get_http_client()
        body = self.get_chat_payload(system_prompt, messages, tools)
        state: dict = {}
        url = self.get_url(self._get_endpoint_chat())
        try:
            async with client.stream("POST", url, json=body, headers=self.get_headers(), timeout=self.timeout) as response:
                if response.status_code >= 300:
                    detail = (await response.aread()).decode("utf-8", errors="replace")[:300]
                    status = response.status_code
                    raise TransportError(
                        f"Chat request to {url} failed with status {status}: {detail}",
                        retryable=status == 429 or status >= 500,
                        status_code=status,
                    )
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        events = self.parse_stream_line(line, state)
                    except ValueError as exc:
                        raise TransportError(f"Malformed chat stream line from {url}: {exc}", retryable=False) from exc
                    for event in events:
                        yield event
        except httpx.HTTPError as exc:
            raise TransportError(f"Chat request to {url} failed: {type(exc).__name__}: {exc}") from exc

        for event in self.flush_stream_state(state):
            yield event
