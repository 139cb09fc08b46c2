"""Semantic document index.

Keeps documents and their embeddings in memory, mirrors them to a JSON file
and ranks documents by cosine similarity against a query embedding.
Readers work on a snapshot of the document map; writers are serialized and
replace the map, so a search never observes a half-applied write.
"""

import asyncio
import json
import os
from datetime import datetime, timezone

from pydantic import ValidationError

from shared.clients.embed.EmbeddingAdapter import EmbeddingAdapter
from shared.errors.errors import EmbeddingProviderError, IngestError, RetrievalError
from shared.helper.HelperConfig import HelperConfig
from shared.index.similarity import cosine_similarity, extract_title
from shared.models.document import Document, DocumentSummary, SearchResult

SEARCH_DEFAULT_TOP_K = 3
SEARCH_MAX_TOP_K = 5
UNTITLED = "Untitled"


class DocumentIndex:
    """Stores documents with embeddings and answers top-K similarity queries."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embedder: EmbeddingAdapter,
        store_path: str | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embedder = embedder
        default_path = os.path.join(helper_config.get_root_dir(), "data", ".vector-store.json")
        self._store_path = store_path if store_path is not None else helper_config.get_string_val("INDEX_PATH", default=default_path)
        self._documents: dict[str, Document] = {}
        self._write_lock = asyncio.Lock()
        self._load_error: str | None = None

    ##########################################
    ############## PERSISTENCE ###############
    ##########################################

    async def load(self) -> int:
        """Load the index file into memory.

        A missing file yields an empty index.

        Returns:
            int: Number of documents loaded.

        Raises:
            RetrievalError: If the file exists but cannot be parsed. The index
                stays unreadable until load() succeeds.
        """
        async with self._write_lock:
            try:
                documents = await asyncio.to_thread(self._read_file)
            except (OSError, ValueError, ValidationError) as exc:
                self._load_error = f"{type(exc).__name__}: {exc}"
                self.logging.error("Document index at %s is unreadable: %s", self._store_path, exc)
                raise RetrievalError(f"Document index is unreadable: {exc}") from exc
            self._documents = {doc.id: doc for doc in documents}
            self._load_error = None
        self.logging.info("Loaded %d documents from %s", len(documents), self._store_path)
        return len(documents)

    def _read_file(self) -> list[Document]:
        if not os.path.exists(self._store_path):
            return []
        with open(self._store_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, list):
            raise ValueError("index file must contain a JSON list of documents")
        return [self._parse_stored(entry) for entry in raw]

    @staticmethod
    def _parse_stored(entry: dict) -> Document:
        """Parse a stored entry, accepting the older layout with a nested metadata object."""
        metadata = entry.pop("metadata", None) or {}
        if "title" not in entry:
            entry["title"] = metadata.get("title") or entry.get("filename", UNTITLED)
        if "size" not in entry and metadata.get("size") is not None:
            entry["size"] = metadata["size"]
        if "updated_at" not in entry and metadata.get("lastModified"):
            entry["updated_at"] = metadata["lastModified"]
        return Document.model_validate(entry)

    def _write_file(self, payload: str) -> None:
        directory = os.path.dirname(self._store_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self._store_path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, self._store_path)

    async def _persist(self, documents: dict[str, Document]) -> None:
        payload = json.dumps([doc.model_dump(mode="json") for doc in documents.values()])
        await asyncio.to_thread(self._write_file, payload)

    def _ensure_readable(self) -> None:
        if self._load_error is not None:
            raise RetrievalError(f"Document index is unreadable: {self._load_error}")

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def add(self, id: str, filename: str, title: str | None, content: str) -> Document:
        """Add or replace a document.

        The stored embedding is reused when the content is unchanged and
        recomputed otherwise.

        Args:
            id (str): Stable document id (the ingest flow uses the filename).
            filename (str): Source filename.
            title (str | None): Explicit title; falls back to the first "# " heading.
            content (str): Document text.

        Returns:
            Document: A copy of the stored document.

        Raises:
            IngestError: If the content is empty, the index is unreadable, or no
                embedding could be produced.
        """
        if not content or not content.strip():
            raise IngestError(f"Document '{id}' has no content.")
        if self._load_error is not None:
            raise IngestError(f"Document index is unreadable, refusing to write '{id}'.")

        existing = self._documents.get(id)
        embedding = existing.embedding if existing is not None and existing.content == content else None
        if embedding is None:
            try:
                embedding = await self._embedder.embed(content)
            except EmbeddingProviderError as exc:
                raise IngestError(f"Could not embed document '{id}': {exc}") from exc

        async with self._write_lock:
            if self._load_error is not None:
                raise IngestError(f"Document index is unreadable, refusing to write '{id}'.")
            # re-read: the entry may have changed while the embedding was computed
            current = self._documents.get(id)
            now = datetime.now(timezone.utc)
            document = Document(
                id=id,
                filename=filename,
                title=title or extract_title(content) or UNTITLED,
                content=content,
                embedding=embedding,
                size=len(content.encode("utf-8")),
                created_at=current.created_at if current is not None else now,
                updated_at=now,
            )
            documents = dict(self._documents)
            documents[id] = document
            await self._persist(documents)
            self._documents = documents

        self.logging.info("Indexed document '%s' (%s, %d bytes).", id, document.title, document.size)
        return document.model_copy(deep=True)

    async def delete(self, id: str) -> bool:
        """Remove a document. Deleting an absent id is not an error.

        Returns:
            bool: True if a document was removed.
        """
        async with self._write_lock:
            if id not in self._documents:
                self.logging.debug("Delete of unknown document '%s' ignored.", id)
                return False
            documents = dict(self._documents)
            del documents[id]
            await self._persist(documents)
            self._documents = documents
        self.logging.info("Removed document '%s' from index.", id)
        return True

    async def clear_embeddings(self) -> int:
        """Drop all stored embeddings so the next add() recomputes them.

        Returns:
            int: Number of documents affected.

        Raises:
            IngestError: If the index is unreadable; the file on disk is left untouched.
        """
        async with self._write_lock:
            if self._load_error is not None:
                raise IngestError("Document index is unreadable, refusing to clear embeddings.")
            documents = {
                doc_id: doc.model_copy(update={"embedding": None})
                for doc_id, doc in self._documents.items()
            }
            await self._persist(documents)
            self._documents = documents
        return len(documents)

    ##########################################
    ################ READS ###################
    ##########################################

    def get(self, id: str) -> Document | None:
        self._ensure_readable()
        document = self._documents.get(id)
        return document.model_copy(deep=True) if document is not None else None

    def is_readable(self) -> bool:
        return self._load_error is None

    def ids(self) -> set[str]:
        self._ensure_readable()
        return set(self._documents.keys())

    async def search(self, query: str, top_k: int = SEARCH_DEFAULT_TOP_K) -> list[SearchResult]:
        """Rank documents by cosine similarity to the query.

        Documents without a usable embedding score 0.0 instead of being
        excluded. Ties keep insertion order.

        Args:
            query (str): Free text query.
            top_k (int): Number of results, clamped to 1..5.

        Returns:
            list[SearchResult]: Highest score first, at most top_k entries.

        Raises:
            RetrievalError: If the index is unreadable.
        """
        self._ensure_readable()
        top_k = max(1, min(int(top_k), SEARCH_MAX_TOP_K))
        if not self._documents:
            return []

        query_vector = await self._embedder.embed(query)
        snapshot = list(self._documents.values())

        scored: list[SearchResult] = []
        for document in snapshot:
            scored.append(SearchResult(document=document, score=self._score(query_vector, document)))

        ranked = sorted(scored, key=lambda result: result.score, reverse=True)[:top_k]
        self.logging.debug(
            "Search '%s' over %d documents -> %s",
            query[:80], len(snapshot), [(r.document.id, round(r.score, 3)) for r in ranked],
        )
        return [
            SearchResult(document=result.document.model_copy(deep=True), score=result.score)
            for result in ranked
        ]

    def _score(self, query_vector: list[float], document: Document) -> float:
        if not document.embedding:
            return 0.0
        if len(document.embedding) != len(query_vector):
            self.logging.warning(
                "Document '%s' has a %d-dimensional embedding, expected %d. Scoring 0.",
                document.id, len(document.embedding), len(query_vector),
            )
            return 0.0
        return cosine_similarity(query_vector, document.embedding)

    # defined last: the name shadows the builtin for annotations in the class body
    def list(self) -> "list[DocumentSummary]":
        """List all documents in insertion order, without content or embeddings."""
        self._ensure_readable()
        return [doc.to_summary() for doc in self._documents.values()]
