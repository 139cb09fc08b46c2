from pydantic import BaseModel, Field


class IncomingPart(BaseModel):
    type: str = "text"
    text: str = ""


class IncomingMessage(BaseModel):
    id: str | None = None
    role: str = "user"
    parts: list[IncomingPart] = []


class ChatRequest(BaseModel):
    """Body of POST /api/chat. message is plain text or a message object with text parts."""

    message: str | IncomingMessage
    id: str | None = None

    def get_text(self) -> str:
        if isinstance(self.message, str):
            return self.message
        return " ".join(part.text for part in self.message.parts if part.type == "text")


class DocumentAddRequest(BaseModel):
    filename: str = Field(min_length=1)
    content: str = Field(min_length=1)
    id: str | None = None
    title: str | None = None
