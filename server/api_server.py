"""FastAPI application entry point for the portal assistant."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbeddingAdapter import EmbeddingAdapter, EmbeddingProvider
from shared.errors.errors import RetrievalError
from shared.index.DocumentIndex import DocumentIndex
from services.document_ingest.IngestService import IngestService
from server.core.AgentLoop import AgentLoop
from server.core.AuthGate import AuthGate
from server.core.CapabilityRegistry import CapabilityRegistry
from server.core.ChatService import ChatService
from server.tools.AuthTools import AuthTools
from server.tools.DocumentTools import DocumentTools
from server.tools.OrderTools import OrderTools
from server.tools.Toolbox import Toolbox
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router
from server.routers.MetadataRouter import router as metadata_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = helper_config = HelperConfig(logger=logging)

    llm_client = ClientManager(helper_config=helper_config, client_type="llm").get_client()
    session_client = ClientManager(helper_config=helper_config, client_type="session").get_client()
    auth_cache = ClientManager(helper_config=helper_config, client_type="cache").get_client()
    store = ClientManager(helper_config=helper_config, client_type="store").get_client()
    # no embed engine configured: documents and queries use fallback embeddings
    embed_client = None
    if helper_config.get_string_val("EMBED_ENGINE", default=""):
        embed_client = ClientManager(helper_config=helper_config, client_type="embed").get_client()

    clients: list[ClientInterface] = [llm_client, session_client, auth_cache, store]
    if embed_client is not None:
        clients.append(embed_client)

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    embedder = EmbeddingAdapter(helper_config=helper_config, provider=EmbeddingProvider(helper_config, embed_client))
    document_index = DocumentIndex(helper_config=helper_config, embedder=embedder)
    try:
        await document_index.load()
    except RetrievalError:
        logging.error("Starting with an unreadable document index. Knowledge base tools will report it as unavailable.")

    capability_registry = CapabilityRegistry()
    toolbox = Toolbox(
        auth_tools=AuthTools(helper_config, session_client, auth_cache),
        order_tools=OrderTools(helper_config, store),
        document_tools=DocumentTools(helper_config, document_index),
    )
    auth_gate = AuthGate(helper_config, session_client, auth_cache)
    agent_loop = AgentLoop(helper_config, llm_client, capability_registry, toolbox)

    app.state.document_index = document_index
    app.state.capability_registry = capability_registry
    app.state.toolbox = toolbox
    app.state.auth_gate = auth_gate
    app.state.chat_service = ChatService(helper_config, store, auth_gate, agent_loop)
    app.state.ingest_service = IngestService(helper_config, document_index)

    await check_connections(llm_client, session_client, auth_cache, store, embed_client)

    # while the app is running...
    yield

    # when the app shuts down, let running turns finish, then close all client connections
    await app.state.chat_service.shutdown()
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="portal_assistant",
    description=(
        "Conversational employee portal assistant. Answers questions from a company knowledge base "
        "through semantic search, manages sales orders and guides guests through authentication. "
        "Chat turns are streamed from POST /api/chat; the knowledge base is maintained via /documents."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-chat-id"],
)

app.include_router(chat_router)
app.include_router(metadata_router)
app.include_router(document_router)


async def check_connections(
    llm_client: ClientInterface,
    session_client: ClientInterface,
    auth_cache: ClientInterface,
    store: ClientInterface,
    embed_client: ClientInterface | None,
) -> None:
    """Check connectivity to all configured backends on startup.

    Model and embedding failures are non-fatal: model calls are retried per
    request and embeddings fall back to pseudo-embeddings. The session store,
    flag cache and relational store are required for every request.

    Raises:
        Exception: If a critical service (session, cache or store) is not reachable.
    """
    if not await llm_client.is_healthy():
        logging.warning("LLM client '%s' is not reachable. Chat requests may fail.", llm_client.get_engine_name())

    if embed_client is not None and not await embed_client.is_healthy():
        logging.warning("Embed client '%s' is not reachable. Fallback embeddings will be used.", embed_client.get_engine_name())

    for client in (session_client, auth_cache, store):
        if not await client.is_healthy():
            raise Exception(
                f"{client.get_client_type()} client '{client.get_engine_name()}' is not reachable. Cannot serve chats."
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting portal_assistant API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
