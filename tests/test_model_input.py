"""Tests for converting stored transcripts into model input."""

import json

from server.core.model_input import INCOMPLETE_TOOL_RESULT, assistant_turn, build_model_messages, tool_message
from shared.models.events import ToolCallRequest
from shared.models.message import Message, OrphanedResultPart, SourcePart, TextPart, ToolCallPart


def _message(role: str, *parts) -> Message:
    return Message(chat_id="chat-1", role=role, parts=list(parts))


class TestAssistantTurn:
    def test_arguments_are_json_encoded(self) -> None:
        turn = assistant_turn("", [ToolCallRequest(tool_call_id="c1", tool_name="getOrders", args={"limit": 3})])
        assert turn["content"] is None
        assert turn["tool_calls"][0]["function"] == {"name": "getOrders", "arguments": '{"limit": 3}'}

    def test_text_only(self) -> None:
        assert assistant_turn("hello", []) == {"role": "assistant", "content": "hello"}

    def test_tool_message(self) -> None:
        assert tool_message("c1", {"success": True}) == {"role": "tool", "tool_call_id": "c1", "content": '{"success": true}'}


class TestBuildModelMessages:
    def test_plain_conversation(self) -> None:
        transcript = [
            _message("user", TextPart(text="hi")),
            _message("assistant", TextPart(text="Hello!")),
        ]
        assert build_model_messages(transcript) == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello!"},
        ]

    def test_tool_calls_followed_by_results(self) -> None:
        transcript = [
            _message("user", TextPart(text="refunds?")),
            _message(
                "assistant",
                ToolCallPart(tool_call_id="c1", tool_name="searchDocs", args={"query": "refund"}, result={"success": True}),
                SourcePart(url="https://portal.example.com/docs/returns.md", title="Returns"),
                TextPart(text="Refunds take 14 days."),
            ),
        ]
        messages = build_model_messages(transcript)

        assert [m["role"] for m in messages] == ["user", "assistant", "tool"]
        assert messages[1]["content"] == "Refunds take 14 days."
        assert messages[1]["tool_calls"][0]["id"] == "c1"
        assert json.loads(messages[2]["content"]) == {"success": True}

    def test_pending_call_gets_synthetic_failure(self) -> None:
        transcript = [_message("assistant", ToolCallPart(tool_call_id="c1", tool_name="listDocs"))]
        messages = build_model_messages(transcript)
        assert json.loads(messages[1]["content"]) == INCOMPLETE_TOOL_RESULT

    def test_orphaned_result_becomes_note(self) -> None:
        transcript = [
            _message(
                "assistant",
                TextPart(text="Done."),
                OrphanedResultPart(tool_call_id="x9", tool_name="getOrders", result={"success": True}),
            )
        ]
        messages = build_model_messages(transcript)

        assert len(messages) == 1
        assert messages[0]["content"].startswith("Done.\n[Result of getOrders (x9) without a matching call:")

    def test_empty_messages_are_skipped(self) -> None:
        assert build_model_messages([_message("user"), _message("assistant")]) == []
