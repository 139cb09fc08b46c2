import json
import uuid

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors.errors import TransportError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.events import ModelEvent, TextDelta, ToolCallRequest


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_chat_model(self) -> str:
        return "llama3.1"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, system_prompt: str, messages: list[dict], tools: list[dict]) -> dict:
        """Build the Ollama chat request body.

        Ollama expects tool-call arguments as objects and names the tool on
        tool-role messages instead of referencing the call id.
        """
        tool_names: dict[str, str] = {}
        converted: list[dict] = [{"role": "system", "content": system_prompt}]
        for message in messages:
            if message["role"] == "assistant" and message.get("tool_calls"):
                calls = []
                for call in message["tool_calls"]:
                    tool_names[call["id"]] = call["function"]["name"]
                    calls.append({
                        "function": {
                            "name": call["function"]["name"],
                            "arguments": json.loads(call["function"]["arguments"] or "{}"),
                        }
                    })
                converted.append({"role": "assistant", "content": message.get("content") or "", "tool_calls": calls})
            elif message["role"] == "tool":
                converted.append({
                    "role": "tool",
                    "content": message["content"],
                    "tool_name": tool_names.get(message.get("tool_call_id", ""), ""),
                })
            else:
                converted.append({"role": message["role"], "content": message.get("content") or ""})

        payload: dict = {"model": self.chat_model, "messages": converted, "stream": True}
        if tools:
            payload["tools"] = [{"type": "function", "function": tool} for tool in tools]
        return payload

    ##########################################
    ############ STREAM PARSING ##############
    ##########################################

    def parse_stream_line(self, line: str, state: dict) -> list[ModelEvent]:
        """Parse one NDJSON line. Ollama sends tool calls whole, without ids."""
        chunk = json.loads(line)
        if chunk.get("error"):
            raise TransportError(f"Ollama chat stream reported an error: {chunk['error']}", retryable=False)

        events: list[ModelEvent] = []
        message = chunk.get("message") or {}
        if message.get("content"):
            events.append(TextDelta(text=message["content"]))
        for call in message.get("tool_calls") or []:
            function = call.get("function") or {}
            arguments = function.get("arguments") or {}
            if isinstance(arguments, str):
                arguments = json.loads(arguments or "{}")
            events.append(ToolCallRequest(
                tool_call_id=call.get("id") or f"call_{uuid.uuid4().hex[:24]}",
                tool_name=function.get("name", ""),
                args=arguments,
            ))
        return events
