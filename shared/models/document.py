"""Pydantic models for knowledge base documents.

Hierarchy:
  Document        : a stored document with its embedding, owned by the DocumentIndex.
  DocumentSummary : listing view without content or embedding payload.
  SearchResult    : a document paired with its similarity score for one query.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """A knowledge base document.

    The embedding is None until it has been computed, and is recomputed
    whenever the content changes.
    """

    id: str
    filename: str
    title: str
    content: str
    embedding: list[float] | None = None
    size: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def to_summary(self) -> "DocumentSummary":
        return DocumentSummary(id=self.id, title=self.title or self.filename, filename=self.filename)


class DocumentSummary(BaseModel):
    """Lightweight document listing entry."""

    id: str
    title: str
    filename: str


class SearchResult(BaseModel):
    """A single ranked search hit."""

    document: Document
    score: float
