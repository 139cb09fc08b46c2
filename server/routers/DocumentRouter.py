from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import DocumentAddRequest
from server.models.responses import DocumentListResponse, DocumentResponse
from shared.errors.errors import IngestError, RetrievalError

router = APIRouter(prefix="/documents", tags=["documents"], dependencies=[Depends(verify_api_key)])


@router.get("")
async def list_documents(request: Request) -> DocumentListResponse:
    try:
        documents = request.app.state.document_index.list()
    except RetrievalError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return DocumentListResponse(documents=documents, total=len(documents))


@router.post("")
async def add_document(request: Request, body: DocumentAddRequest) -> DocumentResponse:
    """Add or replace a document in the index.

    Args:
        request (Request): FastAPI request (provides app.state.document_index).
        body (DocumentAddRequest): Filename, content and optional id/title. The id defaults to the filename.

    Returns:
        DocumentResponse: The stored document without its embedding.
    """
    index = request.app.state.document_index
    try:
        document = await index.add(body.id or body.filename, body.filename, body.title, body.content)
    except IngestError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return DocumentResponse.from_document(document)


@router.delete("/{document_id}")
async def delete_document(document_id: str, request: Request) -> dict:
    removed = await request.app.state.document_index.delete(document_id)
    if not removed:
        raise HTTPException(status_code=404, detail=f"Document '{document_id}' not found")
    return {"status": "deleted", "id": document_id}


@router.post("/sync")
async def sync_documents(request: Request, background_tasks: BackgroundTasks) -> dict:
    """Trigger a full ingest of DOCS_DIR in the background."""
    ingest_service = request.app.state.ingest_service
    background_tasks.add_task(ingest_service.do_full_ingest)
    return {"status": "accepted"}
