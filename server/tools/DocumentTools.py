from functools import partial

from pydantic import BaseModel, Field

from server.core.RequestContext import RequestContext
from server.core.ToolExecutor import Tool
from shared.errors.errors import RetrievalError
from shared.helper.HelperConfig import HelperConfig
from shared.index.DocumentIndex import SEARCH_DEFAULT_TOP_K, SEARCH_MAX_TOP_K, DocumentIndex
from shared.models.events import SourceEvent

PREVIEW_LENGTH = 300


class SearchDocsInput(BaseModel):
    query: str = Field(min_length=1, description="The search query - can be a question or keywords to search for in the knowledge base")
    top_k: int = Field(
        default=SEARCH_DEFAULT_TOP_K,
        alias="topK",
        ge=1,
        le=SEARCH_MAX_TOP_K,
        description="Number of most relevant documents to return (max 5, default 3)",
    )


class GetDocContentInput(BaseModel):
    file_id: str = Field(alias="fileId", min_length=1, description='The filename or ID of the document to retrieve (e.g., "product-guide.md")')


class ListDocsInput(BaseModel):
    pass


class DocumentTools:
    """Knowledge base tools backed by the document index."""

    DESCRIPTIONS: dict[str, str] = {
        "searchDocs": (
            "Search through the knowledge base documents using semantic search. Use this when the user asks "
            "questions about products, policies, technical documentation, or any information that might be in "
            "the company knowledge base. Returns the most relevant documents with their content."
        ),
        "getDocContent": (
            "Retrieve the full content of a specific document from the knowledge base by its filename or ID. "
            "Use this when you need to read the complete content of a document that was found in a search."
        ),
        "listDocs": (
            "List all available documents in the knowledge base. Use this when the user wants to know what "
            "documentation is available or browse the knowledge base."
        ),
    }

    def __init__(self, helper_config: HelperConfig, index: DocumentIndex) -> None:
        self.logging = helper_config.get_logger()
        self._index = index
        self._docs_base_url = helper_config.get_string_val("DOCS_BASE_URL", default="/docs").rstrip("/")

    def get_tools(self, context: RequestContext) -> list[Tool]:
        return [
            Tool(
                name="searchDocs",
                description=self.DESCRIPTIONS["searchDocs"],
                input_model=SearchDocsInput,
                handler=self.search_docs,
                source_extractor=self.sources_from_search,
            ),
            Tool(
                name="getDocContent",
                description=self.DESCRIPTIONS["getDocContent"],
                input_model=GetDocContentInput,
                handler=self.get_doc_content,
                source_extractor=self.sources_from_document,
            ),
            Tool(name="listDocs", description=self.DESCRIPTIONS["listDocs"], input_model=ListDocsInput, handler=self.list_docs),
        ]

    def get_source_url(self, filename: str) -> str:
        return f"{self._docs_base_url}/{filename}"

    ##########################################
    ################ HANDLERS ################
    ##########################################

    async def search_docs(self, params: SearchDocsInput) -> dict:
        try:
            results = await self._index.search(params.query, top_k=params.top_k)
        except RetrievalError as exc:
            self.logging.warning("Knowledge base search failed: %s", exc, color="yellow")
            return {"success": True, "message": "The knowledge base is currently unavailable.", "results": []}

        if not results:
            return {"success": True, "message": "No relevant documents found in the knowledge base.", "results": []}
        return {
            "success": True,
            "message": f"Found {len(results)} relevant document(s).",
            "results": [
                {
                    "filename": result.document.filename,
                    "title": result.document.title or result.document.filename,
                    "relevanceScore": f"{result.score:.3f}",
                    "content": result.document.content,
                    "preview": result.document.content[:PREVIEW_LENGTH] + "...",
                }
                for result in results
            ],
        }

    async def get_doc_content(self, params: GetDocContentInput) -> dict:
        document = self._index.get(params.file_id)
        if document is None:
            return {"success": False, "error": f'Document with ID "{params.file_id}" not found.'}
        return {
            "success": True,
            "message": f"Retrieved document: {document.title or document.filename}",
            "document": {
                "id": document.id,
                "filename": document.filename,
                "title": document.title,
                "content": document.content,
                "lastModified": document.updated_at.isoformat(),
                "size": document.size,
            },
        }

    async def list_docs(self, params: ListDocsInput) -> dict:
        documents = self._index.list()
        if not documents:
            return {"success": True, "message": "No documents found in the knowledge base.", "documents": []}
        return {
            "success": True,
            "message": f"Found {len(documents)} document(s) in the knowledge base.",
            "documents": [summary.model_dump() for summary in documents],
        }

    ##########################################
    ################ SOURCES #################
    ##########################################

    def sources_from_search(self, result: dict) -> list[SourceEvent]:
        return [
            SourceEvent(url=self.get_source_url(item["filename"]), title=item["title"])
            for item in result.get("results", [])
        ]

    def sources_from_document(self, result: dict) -> list[SourceEvent]:
        document = result["document"]
        return [SourceEvent(url=self.get_source_url(document["filename"]), title=document["title"] or document["filename"])]
