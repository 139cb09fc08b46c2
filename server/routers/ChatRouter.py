from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from server.dependencies.auth import get_optional_session, require_session
from server.models.requests import ChatRequest
from server.models.responses import ChatDetailResponse, ChatListResponse
from shared.errors.errors import ChatAccessError
from shared.models.session import Session

router = APIRouter(prefix="/api", tags=["chat"])


async def encode_sse(events: AsyncIterator) -> AsyncIterator[str]:
    """Serialise stream events as server-sent events, terminated by [DONE]."""
    async for event in events:
        yield f"data: {event.model_dump_json()}\n\n"
    yield "data: [DONE]\n\n"


@router.post("/chat")
async def post_chat(
    request: Request,
    body: ChatRequest,
    session: Session | None = Depends(get_optional_session),
) -> StreamingResponse:
    """Send a user message and stream the assistant turn.

    Args:
        request (Request): FastAPI request (provides app.state.chat_service).
        body (ChatRequest): The user message and the optional chat id.
        session (Session | None): Session of the caller, if any.

    Returns:
        StreamingResponse: text/event-stream of stream events; the chat id is
            sent in the x-chat-id header.
    """
    chat_service = request.app.state.chat_service
    try:
        chat_id, events = await chat_service.start_chat(session, request.headers, body.get_text(), body.id)
    except ChatAccessError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    return StreamingResponse(
        encode_sse(events),
        media_type="text/event-stream",
        headers={"x-chat-id": chat_id, "Cache-Control": "no-cache"},
    )


@router.get("/chats")
async def get_chats(request: Request, session: Session = Depends(require_session)) -> ChatListResponse:
    chats = await request.app.state.chat_service.list_chats(session)
    return ChatListResponse(chats=chats, total=len(chats))


@router.get("/chats/{chat_id}")
async def get_chat(chat_id: str, request: Request, session: Session = Depends(require_session)) -> ChatDetailResponse:
    """Return a chat of the session user with all its messages.

    Raises:
        HTTPException: 404 if the chat does not exist, 403 if it belongs to another user.
    """
    try:
        found = await request.app.state.chat_service.get_chat(session, chat_id)
    except ChatAccessError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    if found is None:
        raise HTTPException(status_code=404, detail=f"Chat '{chat_id}' not found")
    chat, messages = found
    return ChatDetailResponse(chat=chat, messages=messages)
