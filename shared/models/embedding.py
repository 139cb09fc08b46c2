"""Result types returned by the primary embedding provider.

The provider never raises on failure; it returns EmbedErr and lets the caller
decide on the fallback.
"""

from pydantic import BaseModel


class EmbedOk(BaseModel):
    vector: list[float]


class EmbedErr(BaseModel):
    reason: str


EmbedResult = EmbedOk | EmbedErr
