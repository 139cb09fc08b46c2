"""Folds model and tool events into one assistant message.

reconcile() is a pure reducer: it never mutates the state it receives and the
same event sequence always yields the same state.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable

from shared.errors.errors import DuplicateToolCallError
from shared.models.events import SourceEvent, TextDelta, ToolCallRequest, ToolCallResult, TranscriptEvent
from shared.models.message import Message, OrphanedResultPart, SourcePart, TextPart, ToolCallPart, new_id


@dataclass(frozen=True)
class TranscriptState:
    text: str = ""
    calls: tuple[ToolCallPart, ...] = ()
    sources: tuple[SourcePart, ...] = ()
    orphans: tuple[OrphanedResultPart, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.text or self.calls or self.sources or self.orphans)


def reconcile(state: TranscriptState, event: TranscriptEvent) -> TranscriptState:
    """Apply one event to the state.

    Raises:
        DuplicateToolCallError: If a tool-call request reuses an open tool_call_id.
    """
    if isinstance(event, TextDelta):
        return replace(state, text=state.text + event.text)

    if isinstance(event, ToolCallRequest):
        if any(call.tool_call_id == event.tool_call_id for call in state.calls):
            raise DuplicateToolCallError(f"Tool call id '{event.tool_call_id}' was requested twice.")
        call = ToolCallPart(tool_call_id=event.tool_call_id, tool_name=event.tool_name, args=dict(event.args))
        return replace(state, calls=state.calls + (call,))

    if isinstance(event, ToolCallResult):
        for index, call in enumerate(state.calls):
            if call.tool_call_id == event.tool_call_id and call.result is None:
                filled = call.model_copy(update={"result": dict(event.result)})
                return replace(state, calls=state.calls[:index] + (filled,) + state.calls[index + 1:])
        orphan = OrphanedResultPart(tool_call_id=event.tool_call_id, tool_name=event.tool_name, result=dict(event.result))
        return replace(state, orphans=state.orphans + (orphan,))

    if isinstance(event, SourceEvent):
        if any(source.url == event.url for source in state.sources):
            return state
        return replace(state, sources=state.sources + (SourcePart(url=event.url, title=event.title),))

    raise TypeError(f"Cannot reconcile event of type {type(event).__name__}")


def reconcile_all(events: Iterable[TranscriptEvent], state: TranscriptState | None = None) -> TranscriptState:
    state = state if state is not None else TranscriptState()
    for event in events:
        state = reconcile(state, event)
    return state


def finalize(
    state: TranscriptState,
    chat_id: str,
    message_id: str | None = None,
    created_at: datetime | None = None,
) -> Message:
    """Build the assistant message: [text?, tool-call..., source..., orphaned tool-result...]."""
    parts: list = []
    if state.text:
        parts.append(TextPart(text=state.text))
    parts.extend(state.calls)
    parts.extend(state.sources)
    parts.extend(state.orphans)
    extra = {"created_at": created_at} if created_at is not None else {}
    return Message(id=message_id or new_id(), chat_id=chat_id, role="assistant", parts=parts, **extra)
