"""Converts stored transcripts into OpenAI-format chat messages for the model."""

import json

from shared.models.events import ToolCallRequest
from shared.models.message import Message, OrphanedResultPart, ToolCallPart

INCOMPLETE_TOOL_RESULT = {"success": False, "error": "The tool call did not complete."}


def assistant_turn(text: str, calls: list[ToolCallRequest] | list[ToolCallPart]) -> dict:
    """Assistant message announcing the tool calls of one step."""
    message: dict = {"role": "assistant", "content": text or None}
    if calls:
        message["tool_calls"] = [
            {
                "id": call.tool_call_id,
                "type": "function",
                "function": {"name": call.tool_name, "arguments": json.dumps(call.args)},
            }
            for call in calls
        ]
    return message


def tool_message(tool_call_id: str, result: dict) -> dict:
    return {"role": "tool", "tool_call_id": tool_call_id, "content": json.dumps(result)}


def _orphan_note(orphan: OrphanedResultPart) -> str:
    return f"[Result of {orphan.tool_name} ({orphan.tool_call_id}) without a matching call: {json.dumps(orphan.result)}]"


def build_model_messages(transcript: list[Message]) -> list[dict]:
    """Build the model input from the full prior transcript.

    Text parts become message content. Tool-call parts become an assistant
    turn with tool_calls followed by one tool message per call; calls that
    never got a result are answered with a synthetic failure. Orphaned
    results are appended to the assistant text as a note.
    """
    messages: list[dict] = []
    for message in transcript:
        text = message.get_text()
        if message.role != "assistant":
            if text:
                messages.append({"role": message.role, "content": text})
            continue

        calls = [part for part in message.parts if isinstance(part, ToolCallPart)]
        notes = [_orphan_note(part) for part in message.parts if isinstance(part, OrphanedResultPart)]
        content = "\n".join(filter(None, [text, *notes]))
        if calls:
            messages.append(assistant_turn(content, calls))
            for call in calls:
                messages.append(tool_message(call.tool_call_id, call.result if call.result is not None else INCOMPLETE_TOOL_RESULT))
        elif content:
            messages.append({"role": "assistant", "content": content})
    return messages
