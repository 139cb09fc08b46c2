"""Ingest runner entry point.

Builds the document index from the files in DOCS_DIR.

Usage:
    python -m services.document_ingest.document_ingest
"""

import asyncio

from services.document_ingest.IngestService import IngestService
from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbeddingAdapter import EmbeddingAdapter, EmbeddingProvider
from shared.errors.errors import RetrievalError
from shared.helper.HelperConfig import HelperConfig
from shared.index.DocumentIndex import DocumentIndex
from shared.logging.logging_setup import setup_logging


async def main() -> None:
    """Run a full ingest."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    # the embed client is optional: without one, documents get fallback embeddings
    embed_client = None
    if config.get_string_val("EMBED_ENGINE", default=""):
        embed_client = ClientManager(helper_config=config, client_type="embed").get_client()

    try:
        if embed_client is not None:
            await embed_client.boot()
            if not await embed_client.is_healthy():
                logger.warning("Embed client %s is not reachable. Using fallback embeddings.", embed_client.get_engine_name(), color="yellow")

        embedder = EmbeddingAdapter(helper_config=config, provider=EmbeddingProvider(config, embed_client))
        index = DocumentIndex(helper_config=config, embedder=embedder)
        try:
            await index.load()
        except RetrievalError as e:
            logger.error(f"Document index is unreadable: {e}. Aborting.")
            return

        ingest_service = IngestService(helper_config=config, index=index)
        result = await ingest_service.do_full_ingest()
        for summary in index.list():
            logger.info("  - %s (%s)", summary.title, summary.filename)
        logger.info("Indexed %d document(s), %d error(s), %d removed.", result["indexed"], result["errors"], result["removed"])
    finally:
        if embed_client is not None:
            await embed_client.close()


if __name__ == "__main__":
    asyncio.run(main())
