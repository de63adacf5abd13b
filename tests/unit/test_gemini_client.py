from __future__ import annotations

import pytest
from google.genai import types

from recipe_editor.app.domain.models import ConversationMessage
from recipe_editor.app.infra.llm.base import ModelReply, ToolCall, ToolResult, ToolResultBatch
from recipe_editor.app.infra.llm.gemini_client import (
    GeminiModelClient,
    _is_rate_limited_error,
    build_contents,
    build_tools,
)
from recipe_editor.services.edit_tools import EDIT_TOOLS
from recipe_editor.services.errors import ModelConfigurationError


class FakeAPIError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code


class TestBuildContents:
    def test_roles_are_mapped(self) -> None:
        contents = build_contents([
            ConversationMessage(role="user", content="Make it vegan"),
            ConversationMessage(role="assistant", content="Which substitute?"),
        ])

        assert [content.role for content in contents] == ["user", "model"]
        assert contents[1].parts[0].text == "Which substitute?"

    def test_blank_messages_are_skipped(self) -> None:
        assert build_contents([ConversationMessage(role="user", content="   ")]) == []

    def test_tool_round_trip(self) -> None:
        contents = build_contents([
            ModelReply(tool_calls=[ToolCall(name="update_steps", arguments={"steps": ["Mix"]}, call_id="c1")]),
            ToolResultBatch(results=[ToolResult(name="update_steps", output="Steps updated", call_id="c1")]),
        ])

        call_part = contents[0].parts[0]
        assert contents[0].role == "model"
        assert call_part.function_call.name == "update_steps"
        assert call_part.function_call.args == {"steps": ["Mix"]}

        response_part = contents[1].parts[0]
        assert response_part.function_response.name == "update_steps"
        assert response_part.function_response.response == {"result": "Steps updated"}
        assert response_part.function_response.id == "c1"

    def test_raw_content_is_replayed(self) -> None:
        raw = types.Content(role="model", parts=[types.Part.from_text(text="thinking")])

        assert build_contents([ModelReply(raw=raw)]) == [raw]

    def test_empty_result_batch_is_dropped(self) -> None:
        assert build_contents([ToolResultBatch()]) == []


class TestBuildTools:
    def test_declares_every_tool(self) -> None:
        tools = build_tools(EDIT_TOOLS.specs())

        assert len(tools) == 1
        assert [d.name for d in tools[0].function_declarations] == EDIT_TOOLS.names

    def test_no_tools(self) -> None:
        assert build_tools([]) == []


class TestRateLimitDetection:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (FakeAPIError(429, "Too many requests"), True),
            (FakeAPIError(400, "429 RESOURCE_EXHAUSTED"), True),
            (FakeAPIError(500, "Internal error"), False),
        ],
    )
    def test_detection(self, error, expected) -> None:
        assert _is_rate_limited_error(error) is expected


def test_missing_api_key() -> None:
    with pytest.raises(ModelConfigurationError):
        GeminiModelClient(api_key="")
