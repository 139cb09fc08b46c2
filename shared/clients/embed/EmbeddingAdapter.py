"""Embedding provider adapter.

EmbeddingProvider wraps the configured embed client and reports failures as
EmbedErr values. EmbeddingAdapter is the caller that picks the fallback
embedder on EmbedErr, so the rest of the system always gets a vector of the
configured dimensionality.
"""

import httpx

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.FallbackEmbedder import FallbackEmbedder
from shared.errors.errors import EmbeddingProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import EmbedErr, EmbedOk, EmbedResult


class EmbeddingProvider:
    """Primary embedding implementation backed by an embed engine client."""

    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface | None) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client

    async def embed(self, text: str, dimensions: int) -> EmbedResult:
        if self._embed_client is None:
            return EmbedErr(reason="no embedding provider configured")
        try:
            vectors = await self._embed_client.do_embed([text])
        except httpx.HTTPError as exc:
            return EmbedErr(reason=f"{type(exc).__name__}: {exc}")
        except Exception as exc:
            # do_embed raises a plain Exception on non-200 responses and ValueError on bad payloads
            return EmbedErr(reason=str(exc))
        vector = vectors[0] if vectors else []
        if len(vector) != dimensions:
            return EmbedErr(reason=f"expected {dimensions} dimensions, provider returned {len(vector)}")
        return EmbedOk(vector=[float(val) for val in vector])


class EmbeddingAdapter:
    """Turns text into a fixed-length vector, falling back to a pseudo-embedding on provider failure."""

    def __init__(
        self,
        helper_config: HelperConfig,
        provider: EmbeddingProvider,
        fallback: FallbackEmbedder | None = None,
        dimensions: int | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self.dimensions = dimensions or int(helper_config.get_number_val("EMBED_DIMENSIONS", default=1536))
        self._provider = provider
        self._fallback = fallback or FallbackEmbedder(dimensions=self.dimensions)
        if self._fallback.dimensions != self.dimensions:
            raise ValueError("Fallback embedder dimensions do not match the adapter dimensions.")
        self.degraded = False

    async def embed(self, text: str) -> list[float]:
        """Embed a text, never raising for provider failures.

        Raises:
            EmbeddingProviderError: Only if the fallback itself fails (e.g. empty text).
        """
        result = await self._provider.embed(text, self.dimensions)
        if isinstance(result, EmbedOk):
            if self.degraded:
                self.logging.info("Embedding provider recovered, leaving degraded mode.", color="green")
                self.degraded = False
            return result.vector

        if not self.degraded:
            self.logging.warning(
                "Embedding provider unavailable (%s). Using fallback embeddings.", result.reason, color="yellow"
            )
        else:
            self.logging.debug("Embedding provider still unavailable: %s", result.reason)
        self.degraded = True
        return self._fallback.embed(text)
