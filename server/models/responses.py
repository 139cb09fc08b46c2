from pydantic import BaseModel

from shared.models.document import Document, DocumentSummary
from shared.models.message import Chat, Message


class ChatListResponse(BaseModel):
    chats: list[Chat]
    total: int


class ChatDetailResponse(BaseModel):
    chat: Chat
    messages: list[Message]


class DocumentListResponse(BaseModel):
    documents: list[DocumentSummary]
    total: int


class DocumentResponse(BaseModel):
    """A stored document without its embedding vector."""

    id: str
    filename: str
    title: str
    size: int
    has_embedding: bool

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            filename=document.filename,
            title=document.title,
            size=document.size,
            has_embedding=document.embedding is not None,
        )
