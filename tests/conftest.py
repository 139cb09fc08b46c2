"""Pytest fixtures and fakes for the portal assistant tests.

This module provides:
- FakeLLMClient: replays scripted model turns and records every invocation
- FakeEmbedClient: bag-of-words embeddings, optionally failing like an unreachable backend
- FakeSessionClient: in-memory stand-in for the session/credential store
- Fixtures wiring the real index, cache, store, tools and agent loop around these fakes
"""

import copy
import logging
import re
import zlib
from typing import Any

import httpx
import pytest

from server.core.AgentLoop import AgentLoop
from server.core.CapabilityRegistry import CapabilityRegistry
from server.core.RequestContext import RequestContext
from server.core.ToolExecutor import ToolExecutor
from server.tools.AuthTools import AuthTools
from server.tools.DocumentTools import DocumentTools
from server.tools.OrderTools import OrderTools
from server.tools.Toolbox import Toolbox
from shared.clients.cache.memory.AuthCacheMemory import AuthCacheMemory
from shared.clients.embed.EmbeddingAdapter import EmbeddingAdapter, EmbeddingProvider
from shared.clients.store.memory.StoreClientMemory import StoreClientMemory
from shared.errors.errors import ToolExecutionError
from shared.helper.HelperConfig import HelperConfig
from shared.index.DocumentIndex import DocumentIndex
from shared.logging.logging_setup import ColorLogger
from shared.models.session import AuthUser, Session

TEST_DIMENSIONS = 64

_ENV_KEYS_TO_CLEAR = (
    "AGENT_MAX_STEPS",
    "MODEL_MAX_RETRIES",
    "GATED_UNAUTHENTICATED",
    "EMBED_DIMENSIONS",
    "EMBED_ENGINE",
    "INDEX_PATH",
    "DOCS_DIR",
    "INGEST_FORCE_REEMBED",
    "AUTH_FLAG_TTL_SECONDS",
    "LLM_ENGINE",
    "SESSION_ENGINE",
    "CACHE_ENGINE",
    "STORE_ENGINE",
    "LLM_OPENAI_API_KEY",
)


# =============================================================================
# Fakes
# =============================================================================


class FakeLLMClient:
    """Replays scripted turns. A turn is a list of events; an Exception (as the
    turn or inside it) is raised at that point of the stream."""

    def __init__(self, turns: list[Any]) -> None:
        self.turns = list(turns)
        self.calls: list[dict] = []

    async def do_stream_chat(self, system_prompt: str, messages: list[dict], tools: list[dict]):
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": copy.deepcopy(messages),
            "tools": [tool["name"] for tool in tools],
        })
        if not self.turns:
            raise AssertionError("Unexpected model invocation")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        for item in turn:
            if isinstance(item, Exception):
                raise item
            yield item


class FakeEmbedClient:
    """Hashes lowercase words into buckets, so texts sharing words score > 0."""

    def __init__(self, dimensions: int = TEST_DIMENSIONS, fail: bool = False) -> None:
        self.dimensions = dimensions
        self.fail = fail
        self.calls = 0

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        self.calls += 1
        if self.fail:
            raise httpx.ConnectError("embedding backend unreachable")
        if isinstance(texts, str):
            texts = [texts]
        return [self._vector(text) for text in texts]

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(word.encode("utf-8")) % self.dimensions] += 1.0
        return vector


class FakeSessionClient:
    def __init__(self, session: Session | None = None) -> None:
        self.session = session
        self.sign_up_error: str | None = None
        self.sign_in_error: str | None = None
        self.sign_out_error: str | None = None
        self.signed_out_with: list[dict] = []

    async def get_session(self, headers) -> Session | None:
        return self.session

    async def do_sign_up(self, username: str, password: str, email: str, name: str | None = None) -> AuthUser:
        if self.sign_up_error:
            raise ToolExecutionError(self.sign_up_error)
        return AuthUser(id=f"account-{username}", email=email, name=name, username=username)

    async def do_sign_in(self, username: str, password: str) -> AuthUser:
        if self.sign_in_error:
            raise ToolExecutionError(self.sign_in_error)
        return AuthUser(id=f"account-{username}", email=f"{username}@example.com", name=username, username=username)

    async def do_sign_out(self, headers) -> None:
        self.signed_out_with.append(dict(headers))
        if self.sign_out_error:
            raise ToolExecutionError(self.sign_out_error)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def env(monkeypatch, tmp_path):
    """Isolated environment: ROOT_DIR in a temp dir, no retry delays."""
    for key in _ENV_KEYS_TO_CLEAR:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    monkeypatch.setenv("MODEL_RETRY_BASE_DELAY", "0")
    monkeypatch.setenv("MODEL_RETRY_MAX_DELAY", "0")
    monkeypatch.setenv("DOCS_BASE_URL", "https://portal.example.com/docs")
    monkeypatch.setenv("API_SERVER_API_KEY", "test-key")
    return monkeypatch


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("portal_assistant.tests")))


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def embedder(helper_config, embed_client) -> EmbeddingAdapter:
    return EmbeddingAdapter(
        helper_config=helper_config,
        provider=EmbeddingProvider(helper_config, embed_client),
        dimensions=TEST_DIMENSIONS,
    )


@pytest.fixture
def index(helper_config, embedder, tmp_path) -> DocumentIndex:
    return DocumentIndex(helper_config=helper_config, embedder=embedder, store_path=str(tmp_path / "index.json"))


@pytest.fixture
def auth_cache(helper_config) -> AuthCacheMemory:
    return AuthCacheMemory(helper_config)


@pytest.fixture
def store(helper_config) -> StoreClientMemory:
    return StoreClientMemory(helper_config)


@pytest.fixture
def session_client() -> FakeSessionClient:
    return FakeSessionClient(Session(user_id="user-1"))


@pytest.fixture
def toolbox(helper_config, session_client, auth_cache, store, index) -> Toolbox:
    return Toolbox(
        auth_tools=AuthTools(helper_config, session_client, auth_cache),
        order_tools=OrderTools(helper_config, store),
        document_tools=DocumentTools(helper_config, index),
    )


@pytest.fixture
def executor(helper_config) -> ToolExecutor:
    return ToolExecutor(helper_config)


@pytest.fixture
def make_context():
    def _make(authenticated: bool = True, user_id: str = "user-1", chat_id: str = "chat-1", is_anonymous: bool = False) -> RequestContext:
        return RequestContext(
            session=Session(user_id=user_id, is_anonymous=is_anonymous),
            authenticated=authenticated,
            chat_id=chat_id,
            headers={"cookie": "session=abc"},
        )

    return _make


@pytest.fixture
def make_agent_loop(helper_config, toolbox, executor):
    def _make(turns: list[Any]) -> tuple[AgentLoop, FakeLLMClient]:
        llm = FakeLLMClient(turns)
        loop = AgentLoop(helper_config, llm, CapabilityRegistry(), toolbox, executor)
        return loop, llm

    return _make
