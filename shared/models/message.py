"""Pydantic models for chats, messages and message parts.

A message carries an ordered list of parts. Tool calls are stored with their
result inline; a result that never matched a call is kept as an orphaned
tool-result part.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallPart(BaseModel):
    """A tool invocation and, once known, its output."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = {}
    result: dict[str, Any] | None = None


class SourcePart(BaseModel):
    type: Literal["source"] = "source"
    url: str
    title: str


class OrphanedResultPart(BaseModel):
    """A tool result whose tool_call_id matched no open call in the message."""

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    result: dict[str, Any]
    orphaned: bool = True


Part = Annotated[
    TextPart | ToolCallPart | SourcePart | OrphanedResultPart,
    Field(discriminator="type"),
]


class Message(BaseModel):
    id: str = Field(default_factory=new_id)
    chat_id: str
    role: Literal["user", "assistant", "system"]
    parts: list[Part] = []
    created_at: datetime = Field(default_factory=_utcnow)

    def get_text(self) -> str:
        """Join all text parts with a single space."""
        return " ".join(part.text for part in self.parts if isinstance(part, TextPart))

    @classmethod
    def from_legacy_content(
        cls,
        id: str,
        chat_id: str,
        role: str,
        content: str | None,
        created_at: datetime | None = None,
    ) -> "Message":
        """Migrate a row persisted with a flattened content string.

        Older rows stored either the assistant text or, for tool-only turns,
        the JSON-serialized list of tool calls. Tool calls recovered this way
        have no result.
        """
        content = content or ""
        parts: list = []
        decoded = None
        if content.lstrip().startswith("["):
            try:
                decoded = json.loads(content)
            except json.JSONDecodeError:
                decoded = None
        if isinstance(decoded, list) and decoded and all(isinstance(c, dict) and "toolCallId" in c for c in decoded):
            for call in decoded:
                args = call.get("input", call.get("args")) or {}
                parts.append(
                    ToolCallPart(
                        tool_call_id=str(call["toolCallId"]),
                        tool_name=str(call.get("toolName", "unknown")),
                        args=args if isinstance(args, dict) else {"value": args},
                    )
                )
        elif content:
            parts.append(TextPart(text=content))
        return cls(
            id=id,
            chat_id=chat_id,
            role=role,
            parts=parts,
            created_at=created_at or _utcnow(),
        )


class Chat(BaseModel):
    id: str
    user_id: str
    title: str
    visibility: Literal["public", "private"] = "private"
    created_at: datetime = Field(default_factory=_utcnow)
