"""Deterministic pseudo-embedding used when the embedding provider is unavailable."""

import math

from shared.errors.errors import EmbeddingProviderError

GOLDEN_RATIO_FRACTION = 0.618033988749


class FallbackEmbedder:
    """Derives a unit vector from the character codes of a text.

    Component i is sin(code(text[i mod len]) * frac(i * 0.618...) * 0.1); the
    vector is then L2-normalized. The same text always yields the same vector.
    """

    def __init__(self, dimensions: int = 1536) -> None:
        if dimensions <= 0:
            raise ValueError("Embedding dimensions must be positive.")
        self.dimensions = dimensions
        self._position_factors = [(i * GOLDEN_RATIO_FRACTION) % 1 for i in range(dimensions)]

    def embed(self, text: str) -> list[float]:
        """Return the pseudo-embedding of a text.

        Raises:
            EmbeddingProviderError: If the text is empty or produces a zero vector.
        """
        if not text:
            raise EmbeddingProviderError("Cannot build a fallback embedding for empty text.")
        codes = [ord(char) for char in text]
        length = len(codes)
        vector = [
            math.sin(codes[i % length] * factor * 0.1)
            for i, factor in enumerate(self._position_factors)
        ]
        magnitude = math.sqrt(sum(val * val for val in vector))
        if magnitude == 0:
            raise EmbeddingProviderError("Fallback embedding has zero magnitude.")
        return [val / magnitude for val in vector]
