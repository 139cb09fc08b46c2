"""Document ingest service.

Reads the knowledge base files from DOCS_DIR, adds each one to the document
index (id = filename) and removes index entries whose file disappeared.
"""

import asyncio
import os

from shared.errors.errors import IngestError
from shared.helper.HelperConfig import HelperConfig
from shared.index.DocumentIndex import DocumentIndex

SUPPORTED_EXTENSIONS = (".md", ".txt")
DOC_CONCURRENCY = 5     # max parallel document embeddings


class IngestService:
    """Keeps the document index in line with the files in DOCS_DIR."""

    def __init__(self, helper_config: HelperConfig, index: DocumentIndex, docs_dir: str | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._index = index
        default_dir = os.path.join(helper_config.get_root_dir(), "data")
        self._docs_dir = docs_dir if docs_dir is not None else helper_config.get_string_val("DOCS_DIR", default=default_dir)
        self._force_reembed = helper_config.get_bool_val("INGEST_FORCE_REEMBED", default=False)
        self._lock = asyncio.Lock()

    ##########################################
    ################# CORE ###################
    ##########################################

    async def do_full_ingest(self) -> dict:
        """Ingest every supported file and drop orphaned index entries.

        Runs are serialized; a second call waits for the first to finish. An
        unreadable index is left untouched and nothing is ingested.

        Returns:
            dict: Counts of indexed, failed and removed documents.
        """
        async with self._lock:
            if not self._index.is_readable():
                self.logging.error("Document index is unreadable, skipping ingest from '%s'.", self._docs_dir)
                return {"indexed": 0, "errors": 0, "removed": 0}
            self.logging.info("Starting full ingest from '%s'...", self._docs_dir)
            if self._force_reembed:
                cleared = await self._index.clear_embeddings()
                self.logging.info("INGEST_FORCE_REEMBED set, dropped %d cached embeddings.", cleared)

            filenames = await asyncio.to_thread(self._list_files)
            sem = asyncio.Semaphore(DOC_CONCURRENCY)
            results = await asyncio.gather(
                *[self._ingest_file(filename, sem) for filename in filenames],
                return_exceptions=True,
            )

            indexed = sum(1 for r in results if r is True)
            errors = sum(1 for r in results if isinstance(r, Exception))
            removed = await self._cleanup_orphans(set(filenames))

            self.logging.info(
                "Ingest complete: %d indexed, %d errors, %d removed.", indexed, errors, removed, color="green"
            )
            return {"indexed": indexed, "errors": errors, "removed": removed}

    def _list_files(self) -> list[str]:
        if not os.path.isdir(self._docs_dir):
            self.logging.warning("Documents directory '%s' does not exist.", self._docs_dir)
            return []
        return sorted(
            entry
            for entry in os.listdir(self._docs_dir)
            if not entry.startswith(".")
            and entry.lower().endswith(SUPPORTED_EXTENSIONS)
            and os.path.isfile(os.path.join(self._docs_dir, entry))
        )

    def _read_file(self, filename: str) -> str:
        with open(os.path.join(self._docs_dir, filename), "r", encoding="utf-8") as f:
            return f.read()

    async def _ingest_file(self, filename: str, sem: asyncio.Semaphore) -> bool:
        """Add one file to the index.

        Raises:
            IngestError: Propagated to gather() if the file cannot be indexed.
        """
        async with sem:
            try:
                content = await asyncio.to_thread(self._read_file, filename)
            except (OSError, UnicodeDecodeError) as exc:
                self.logging.error("Could not read '%s': %s", filename, exc)
                raise IngestError(f"Could not read '{filename}': {exc}") from exc
            try:
                await self._index.add(filename, filename, None, content)
            except IngestError as exc:
                self.logging.error("Could not index '%s': %s", filename, exc)
                raise
            return True

    ##########################################
    ############ ORPHAN CLEANUP ##############
    ##########################################

    async def _cleanup_orphans(self, present: set[str]) -> int:
        removed = 0
        for doc_id in sorted(self._index.ids() - present):
            if await self._index.delete(doc_id):
                self.logging.info("Removed orphaned document '%s'.", doc_id)
                removed += 1
        return removed
