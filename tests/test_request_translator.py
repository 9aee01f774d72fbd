"""Tests for canonical message -> request body translation."""

from __future__ import annotations

import pytest

from vertex_stream.errors import ToolCorrelationError
from vertex_stream.llm.request_translator import (
    HARM_CATEGORIES,
    build_request,
    build_tool_identity_map,
    resolve_model_id,
    translate_messages,
)
from vertex_stream.types import (
    CanonicalMessage,
    ReasoningConfig,
    TextBlock,
    ToolDeclaration,
    ToolResultBlock,
    ToolUseBlock,
)


def _tool_conversation() -> list[CanonicalMessage]:
    return [
        CanonicalMessage(role="user", content="Read the file"),
        CanonicalMessage(
            role="assistant",
            content=[
                TextBlock("I will read it."),
                ToolUseBlock(id="call_1", name="read_file", input={"path": "a.py"}),
            ],
        ),
        CanonicalMessage(
            role="user",
            content=[ToolResultBlock(tool_use_id="call_1", content="X")],
        ),
    ]


class TestRoleMapping:
    def test_assistant_becomes_model(self):
        contents = translate_messages([CanonicalMessage(role="assistant", content="hi")])
        assert contents[0].role == "model"

    def test_plain_user_stays_user(self):
        contents = translate_messages([CanonicalMessage(role="user", content="hi")])
        assert contents[0].role == "user"

    def test_user_with_tool_result_becomes_function(self):
        contents = translate_messages(_tool_conversation())
        assert [c.role for c in contents] == ["user", "model", "function"]


class TestContentMapping:
    def test_text_and_function_call(self):
        body = build_request("sys", _tool_conversation())
        model_turn = body["contents"][1]
        assert model_turn["parts"][0] == {"text": "I will read it."}
        assert model_turn["parts"][1] == {
            "functionCall": {"name": "read_file", "args": {"path": "a.py"}},
        }

    def test_tool_result_correlation(self):
        body = build_request("sys", _tool_conversation())
        last = body["contents"][-1]
        assert last["role"] == "function"
        response = last["parts"][0]["functionResponse"]
        assert response == {"name": "read_file", "response": {"content": "X"}}
        assert "name" not in response["response"]

    def test_tool_result_with_text_block_list(self):
        messages = _tool_conversation()
        messages[-1] = CanonicalMessage(
            role="user",
            content=[
                ToolResultBlock(
                    tool_use_id="call_1",
                    content=[TextBlock("line 1"), TextBlock("line 2")],
                ),
                TextBlock("continue"),
            ],
        )
        last = build_request("sys", messages)["contents"][-1]
        assert last["role"] == "function"
        assert last["parts"][0]["functionResponse"]["response"] == {
            "content": "line 1\n\nline 2",
        }
        assert last["parts"][1] == {"text": "continue"}

    def test_unknown_tool_id_fails_loudly(self):
        messages = [
            CanonicalMessage(
                role="user",
                content=[ToolResultBlock(tool_use_id="missing", content="X")],
            ),
        ]
        with pytest.raises(ToolCorrelationError) as exc_info:
            build_request("sys", messages)
        assert exc_info.value.tool_use_id == "missing"

    def test_tool_result_before_its_tool_use_fails(self):
        messages = [
            CanonicalMessage(
                role="user",
                content=[ToolResultBlock(tool_use_id="call_1", content="X")],
            ),
            CanonicalMessage(
                role="assistant",
                content=[ToolUseBlock(id="call_1", name="read_file")],
            ),
        ]
        with pytest.raises(ToolCorrelationError) as exc_info:
            build_request("sys", messages)
        assert exc_info.value.tool_use_id == "call_1"

    def test_tool_result_in_same_message_as_tool_use_fails(self):
        messages = [
            CanonicalMessage(
                role="user",
                content=[
                    ToolUseBlock(id="call_1", name="read_file"),
                    ToolResultBlock(tool_use_id="call_1", content="X"),
                ],
            ),
        ]
        with pytest.raises(ToolCorrelationError):
            build_request("sys", messages)

    def test_identity_map_records_positions(self):
        names = build_tool_identity_map(_tool_conversation())
        assert names == {"call_1": (1, "read_file")}

    def test_reasoning_annotations_filtered(self):
        messages = [
            CanonicalMessage(role="user", content="hi"),
            CanonicalMessage(role="assistant", content="pondering", kind="reasoning"),
            CanonicalMessage(role="assistant", content="hello"),
        ]
        body = build_request("sys", messages)
        assert len(body["contents"]) == 2
        assert body["contents"][1]["parts"] == [{"text": "hello"}]

    def test_unsupported_block_rejected(self):
        msg = CanonicalMessage(role="user", content=[])
        msg.content.append({"type": "image"})  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            translate_messages([msg])


class TestThoughtSignatures:
    def _signed(self) -> list[CanonicalMessage]:
        messages = _tool_conversation()
        messages[1].thought_signature = "sig-abc"
        return messages

    def test_not_sent_without_reasoning(self):
        body = build_request("sys", self._signed())
        assert "thoughtSignature" not in str(body)

    def test_attached_to_first_function_call(self):
        body = build_request("sys", self._signed(), reasoning=ReasoningConfig(1024))
        parts = body["contents"][1]["parts"]
        assert "thoughtSignature" not in parts[0]
        assert parts[1]["thoughtSignature"] == "sig-abc"

    def test_attached_to_first_part_without_call(self):
        messages = [
            CanonicalMessage(role="assistant", content="answer", thought_signature="s1"),
        ]
        body = build_request("sys", messages, reasoning=ReasoningConfig())
        assert body["contents"][0]["parts"][0] == {"text": "answer", "thoughtSignature": "s1"}


class TestRequestBody:
    def test_shape_and_defaults(self):
        body = build_request("system prompt", [CanonicalMessage(role="user", content="hello")])
        assert body["systemInstruction"] == {"parts": [{"text": "system prompt"}]}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "hello"}]}]
        assert body["generationConfig"] == {"temperature": 1.0, "maxOutputTokens": 8192}
        assert "tools" not in body

    def test_safety_settings(self):
        body = build_request("s", [])
        assert body["safetySettings"] == [
            {"category": c, "threshold": "BLOCK_ONLY_HIGH"} for c in HARM_CATEGORIES
        ]
        assert len(body["safetySettings"]) == 4

    def test_generation_params(self):
        body = build_request("s", [], temperature=0.5, max_output_tokens=1000)
        assert body["generationConfig"]["temperature"] == 0.5
        assert body["generationConfig"]["maxOutputTokens"] == 1000

    def test_thinking_config(self):
        body = build_request("s", [], reasoning=ReasoningConfig(budget_tokens=2048))
        assert body["generationConfig"]["thinkingConfig"] == {
            "includeThoughts": True,
            "thinkingBudget": 2048,
        }

    def test_tools_sanitized_and_wrapped(self):
        tools = [
            {
                "type": "function",
                "function": {
                    "name": "test_tool",
                    "description": "A test tool",
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "param1": {"type": "string", "default": "d"},
                            "param3": {"type": ["string", "null"]},
                        },
                        "required": ["param1"],
                        "additionalProperties": False,
                    },
                },
            },
            ToolDeclaration(name="no_params", description="Takes nothing"),
        ]
        body = build_request("s", [], tools=tools)
        assert len(body["tools"]) == 1
        decls = body["tools"][0]["functionDeclarations"]
        assert [d["name"] for d in decls] == ["test_tool", "no_params"]
        params = decls[0]["parameters"]
        assert "additionalProperties" not in params
        assert params["properties"]["param1"] == {"type": "string"}
        assert params["properties"]["param3"] == {"type": "string", "nullable": True}
        assert "parameters" not in decls[1]


class TestModelId:
    def test_plain_id(self):
        assert resolve_model_id("gemini-2.5-pro") == ("gemini-2.5-pro", False)

    def test_thinking_suffix(self):
        assert resolve_model_id("gemini-2.5-flash:thinking") == ("gemini-2.5-flash", True)
