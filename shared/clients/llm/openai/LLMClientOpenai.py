import json
import uuid

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors.errors import TransportError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.events import ModelEvent, TextDelta, ToolCallRequest


def parse_tool_arguments(raw: str) -> dict:
    """Decode streamed tool arguments; undecodable input is kept under "_raw_arguments"."""
    if not raw or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        return {"_raw_arguments": raw}
    return decoded if isinstance(decoded, dict) else {"_raw_arguments": raw}


class LLMClientOpenai(LLMClientInterface):
    """Chat client for OpenAI-compatible /v1/chat/completions backends (OpenAI, xAI, vLLM, ...)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_default_chat_model(self) -> str:
        return "gpt-4o-mini"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def _get_endpoint_chat(self) -> str:
        return "/v1/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, system_prompt: str, messages: list[dict], tools: list[dict]) -> dict:
        payload: dict = {
            "model": self.chat_model,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "stream": True,
        }
        if tools:
            payload["tools"] = [{"type": "function", "function": tool} for tool in tools]
        return payload

    ##########################################
    ############ STREAM PARSING ##############
    ##########################################

    def parse_stream_line(self, line: str, state: dict) -> list[ModelEvent]:
        """Parse one SSE line ("data: {...}").

        Tool-call fragments arrive spread over many chunks, keyed by their index;
        they are buffered in state and emitted once the choice finishes.
        """
        if not line.startswith("data:"):
            return []
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            return []
        chunk = json.loads(data)
        if "error" in chunk:
            raise TransportError(f"Chat stream reported an error: {chunk['error']}", retryable=False)

        events: list[ModelEvent] = []
        for choice in chunk.get("choices") or []:
            delta = choice.get("delta") or {}
            if delta.get("content"):
                events.append(TextDelta(text=delta["content"]))
            for fragment in delta.get("tool_calls") or []:
                entry = state.setdefault("tool_calls", {}).setdefault(
                    fragment.get("index", 0), {"id": None, "name": "", "arguments": ""}
                )
                if fragment.get("id"):
                    entry["id"] = fragment["id"]
                function = fragment.get("function") or {}
                if function.get("name"):
                    entry["name"] = function["name"]
                entry["arguments"] += function.get("arguments") or ""
            if choice.get("finish_reason"):
                events.extend(self.flush_stream_state(state))
        return events

    def flush_stream_state(self, state: dict) -> list[ModelEvent]:
        buffered: dict = state.pop("tool_calls", {})
        return [
            ToolCallRequest(
                tool_call_id=entry["id"] or f"call_{uuid.uuid4().hex[:24]}",
                tool_name=entry["name"],
                args=parse_tool_arguments(entry["arguments"]),
            )
            for _, entry in sorted(buffered.items())
        ]
