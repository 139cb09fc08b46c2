"""Tests for the HTTP clients (model engines, session store) and the ClientManager.

HTTP traffic is served by httpx.MockTransport handlers injected in place of the
booted AsyncClient.
"""

import json

import httpx
import pytest

from shared.clients.ClientManager import ClientManager
from shared.clients.cache.memory.AuthCacheMemory import AuthCacheMemory
from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai, parse_tool_arguments
from shared.clients.session.betterauth.SessionClientBetterauth import SessionClientBetterauth
from shared.clients.store.memory.StoreClientMemory import StoreClientMemory
from shared.errors.errors import ToolExecutionError, TransportError
from shared.models.events import TextDelta, ToolCallRequest


def _sse(*chunks: dict) -> bytes:
    lines = [f"data: {json.dumps(chunk)}" for chunk in chunks] + ["data: [DONE]"]
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


def _attach(client, handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client._client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return seen


async def _collect(stream) -> list:
    return [event async for event in stream]


@pytest.fixture
def openai_client(env, helper_config) -> LLMClientOpenai:
    env.setenv("LLM_OPENAI_API_KEY", "sk-test")
    return LLMClientOpenai(helper_config)


@pytest.fixture
def ollama_client(env, helper_config) -> LLMClientOllama:
    env.setenv("LLM_OLLAMA_BASE_URL", "http://ollama:11434")
    return LLMClientOllama(helper_config)


@pytest.fixture
def session_store(env, helper_config) -> SessionClientBetterauth:
    env.setenv("SESSION_BETTERAUTH_BASE_URL", "http://auth:3000")
    return SessionClientBetterauth(helper_config)


class TestParseToolArguments:
    def test_valid_object(self) -> None:
        assert parse_tool_arguments('{"query": "refund"}') == {"query": "refund"}

    def test_empty(self) -> None:
        assert parse_tool_arguments("") == {}

    def test_undecodable_kept_raw(self) -> None:
        assert parse_tool_arguments('{"query": ') == {"_raw_arguments": '{"query": '}
        assert parse_tool_arguments("[1]") == {"_raw_arguments": "[1]"}


class TestOpenaiClient:
    def test_missing_api_key_is_rejected(self, helper_config) -> None:
        with pytest.raises(ValueError):
            LLMClientOpenai(helper_config)

    def test_payload_prepends_system_prompt(self, openai_client) -> None:
        tool = {"name": "listDocs", "description": "List", "parameters": {"type": "object", "properties": {}}}
        payload = openai_client.get_chat_payload("be nice", [{"role": "user", "content": "hi"}], [tool])
        assert payload["messages"][0] == {"role": "system", "content": "be nice"}
        assert payload["stream"] is True
        assert payload["tools"] == [{"type": "function", "function": tool}]

    def test_payload_without_tools_omits_key(self, openai_client) -> None:
        assert "tools" not in openai_client.get_chat_payload("p", [], [])

    def test_tool_call_fragments_are_buffered_until_finish(self, openai_client) -> None:
        state: dict = {}
        first = openai_client.parse_stream_line(
            'data: {"choices": [{"delta": {"tool_calls": [{"index": 0, "id": "call-1", "function": {"name": "searchDocs", "arguments": "{\\"que"}}]}}]}',
            state,
        )
        assert first == []
        second = openai_client.parse_stream_line(
            'data: {"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"arguments": "ry\\": \\"refund\\"}"}}]}, "finish_reason": "tool_calls"}]}',
            state,
        )
        assert second == [ToolCallRequest(tool_call_id="call-1", tool_name="searchDocs", args={"query": "refund"})]
        assert openai_client.flush_stream_state(state) == []

    def test_error_chunk_raises(self, openai_client) -> None:
        with pytest.raises(TransportError):
            openai_client.parse_stream_line('data: {"error": {"message": "boom"}}', {})

    @pytest.mark.asyncio
    async def test_stream_chat(self, openai_client) -> None:
        body = _sse(
            {"choices": [{"delta": {"content": "Hel"}}]},
            {"choices": [{"delta": {"content": "lo"}, "finish_reason": "stop"}]},
        )
        seen = _attach(openai_client, lambda request: httpx.Response(200, content=body))

        events = await _collect(openai_client.do_stream_chat("prompt", [{"role": "user", "content": "hi"}], []))

        assert events == [TextDelta(text="Hel"), TextDelta(text="lo")]
        assert str(seen[0].url) == "https://api.openai.com/v1/chat/completions"
        assert seen[0].headers["authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self, openai_client) -> None:
        _attach(openai_client, lambda request: httpx.Response(503, text="overloaded"))
        with pytest.raises(TransportError) as exc_info:
            await _collect(openai_client.do_stream_chat("prompt", [], []))
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_client_error_is_not_retryable(self, openai_client) -> None:
        _attach(openai_client, lambda request: httpx.Response(400, text="bad request"))
        with pytest.raises(TransportError) as exc_info:
            await _collect(openai_client.do_stream_chat("prompt", [], []))
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self, openai_client) -> None:
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        _attach(openai_client, _fail)
        with pytest.raises(TransportError) as exc_info:
            await _collect(openai_client.do_stream_chat("prompt", [], []))
        assert exc_info.value.retryable is True


class TestOllamaClient:
    def test_payload_converts_tool_turns(self, ollama_client) -> None:
        messages = [
            {"role": "user", "content": "find refunds"},
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [{"id": "call-1", "type": "function", "function": {"name": "searchDocs", "arguments": '{"query": "refund"}'}}],
            },
            {"role": "tool", "tool_call_id": "call-1", "content": '{"success": true}'},
        ]
        payload = ollama_client.get_chat_payload("prompt", messages, [])

        assert payload["model"] == "llama3.1"
        assert payload["messages"][2] == {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"function": {"name": "searchDocs", "arguments": {"query": "refund"}}}],
        }
        assert payload["messages"][3] == {"role": "tool", "content": '{"success": true}', "tool_name": "searchDocs"}

    def test_tool_calls_get_generated_ids(self, ollama_client) -> None:
        line = json.dumps({"message": {"content": "", "tool_calls": [
            {"function": {"name": "listDocs", "arguments": {}}},
            {"function": {"name": "getOrders", "arguments": {"limit": 2}}},
        ]}})
        events = ollama_client.parse_stream_line(line, {})

        assert [event.tool_name for event in events] == ["listDocs", "getOrders"]
        assert events[1].args == {"limit": 2}
        assert events[0].tool_call_id != events[1].tool_call_id

    def test_error_line_raises(self, ollama_client) -> None:
        with pytest.raises(TransportError):
            ollama_client.parse_stream_line('{"error": "model not found"}', {})

    @pytest.mark.asyncio
    async def test_stream_chat_ndjson(self, ollama_client) -> None:
        body = "\n".join([
            json.dumps({"message": {"role": "assistant", "content": "Hi"}, "done": False}),
            json.dumps({"message": {"role": "assistant", "content": " there"}, "done": True}),
        ])
        seen = _attach(ollama_client, lambda request: httpx.Response(200, text=body))

        events = await _collect(ollama_client.do_stream_chat("prompt", [], []))

        assert events == [TextDelta(text="Hi"), TextDelta(text=" there")]
        assert str(seen[0].url) == "http://ollama:11434/api/chat"
        assert "authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_malformed_line_is_not_retryable(self, ollama_client) -> None:
        _attach(ollama_client, lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(TransportError) as exc_info:
            await _collect(ollama_client.do_stream_chat("prompt", [], []))
        assert exc_info.value.retryable is False


class TestBetterauthSessionClient:
    @pytest.mark.asyncio
    async def test_no_identifying_headers_means_no_session(self, session_store) -> None:
        seen = _attach(session_store, lambda request: httpx.Response(200, json={}))
        assert await session_store.get_session({"accept": "text/html"}) is None
        assert seen == []

    @pytest.mark.asyncio
    async def test_session_lookup_forwards_cookie(self, session_store) -> None:
        seen = _attach(
            session_store,
            lambda request: httpx.Response(200, json={"user": {"id": "u1", "isAnonymous": True}, "session": {}}),
        )
        session = await session_store.get_session({"Cookie": "session=abc", "Accept": "*/*"})

        assert session.user_id == "u1"
        assert session.is_anonymous is True
        assert str(seen[0].url) == "http://auth:3000/api/auth/get-session"
        assert seen[0].headers["cookie"] == "session=abc"

    @pytest.mark.asyncio
    async def test_unauthorized_lookup_means_no_session(self, session_store) -> None:
        _attach(session_store, lambda request: httpx.Response(401))
        assert await session_store.get_session({"cookie": "session=expired"}) is None

    @pytest.mark.asyncio
    async def test_sign_up_payload_and_user(self, session_store) -> None:
        seen = _attach(
            session_store,
            lambda request: httpx.Response(200, json={"user": {"id": "u2", "email": "ada@example.com", "name": "ada", "username": "ada"}}),
        )
        user = await session_store.do_sign_up("ada", "password123", "ada@example.com")

        assert user.id == "u2"
        assert json.loads(seen[0].content) == {"email": "ada@example.com", "password": "password123", "name": "ada", "username": "ada"}

    @pytest.mark.asyncio
    async def test_rejected_sign_in_raises_with_message(self, session_store) -> None:
        _attach(session_store, lambda request: httpx.Response(401, json={"message": "Invalid username or password"}))
        with pytest.raises(ToolExecutionError, match="Invalid username or password"):
            await session_store.do_sign_in("ada", "wrong-password")


class TestClientManager:
    def test_resolves_engine_class(self, env, helper_config) -> None:
        env.setenv("CACHE_ENGINE", "memory")
        env.setenv("STORE_ENGINE", "Memory")
        assert isinstance(ClientManager(helper_config, "cache").get_client(), AuthCacheMemory)
        assert isinstance(ClientManager(helper_config, "store").get_client(), StoreClientMemory)

    def test_unknown_engine(self, env, helper_config) -> None:
        env.setenv("CACHE_ENGINE", "memcached")
        with pytest.raises(ValueError, match="Unsupported cache engine"):
            ClientManager(helper_config, "cache")

    def test_missing_engine(self, helper_config) -> None:
        with pytest.raises(ValueError):
            ClientManager(helper_config, "llm")

    def test_unknown_client_type(self, helper_config) -> None:
        with pytest.raises(ValueError, match="Unknown client type"):
            ClientManager(helper_config, "vector")
