"""Events flowing from the model through the agent loop to the caller.

Model and tool events (text-delta, tool-call-request, tool-call-result,
source) are folded into the assistant message by the TranscriptReconciler.
The remaining events only frame the outbound stream.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from shared.models.message import Message


class TextDelta(BaseModel):
    type: Literal["text-delta"] = "text-delta"
    text: str


class ToolCallRequest(BaseModel):
    type: Literal["tool-call-request"] = "tool-call-request"
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = {}


class ToolCallResult(BaseModel):
    type: Literal["tool-call-result"] = "tool-call-result"
    tool_call_id: str
    tool_name: str
    result: dict[str, Any]


class SourceEvent(BaseModel):
    type: Literal["source"] = "source"
    url: str
    title: str


class StreamStart(BaseModel):
    type: Literal["start"] = "start"
    chat_id: str
    message_id: str


class StepFinish(BaseModel):
    type: Literal["step-finish"] = "step-finish"
    step: int
    tool_calls: int


class StreamFinish(BaseModel):
    type: Literal["finish"] = "finish"
    message: Message
    finish_reason: Literal["stop", "step-bound", "static"]


class StreamError(BaseModel):
    type: Literal["error"] = "error"
    error: str


ModelEvent = TextDelta | ToolCallRequest
TranscriptEvent = TextDelta | ToolCallRequest | ToolCallResult | SourceEvent
StreamEvent = Annotated[
    TextDelta | ToolCallRequest | ToolCallResult | SourceEvent | StreamStart | StepFinish | StreamFinish | StreamError,
    Field(discriminator="type"),
]
