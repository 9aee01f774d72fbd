"""Tests for vertex_stream shared types."""

import pytest

from vertex_stream.types import (
    CanonicalMessage,
    FunctionCallPart,
    FunctionResponsePart,
    ProviderContent,
    ReasoningConfig,
    TextBlock,
    TextEvent,
    TextPart,
    ToolDeclaration,
    ToolResultBlock,
    ToolUseBlock,
    UsageEvent,
)


class TestCanonicalMessage:
    def test_string_content_normalized(self):
        msg = CanonicalMessage(role="user", content="hi")
        assert msg.content == [TextBlock("hi")]

    def test_invalid_role(self):
        with pytest.raises(ValueError):
            CanonicalMessage(role="system", content="x")

    def test_from_dict_blocks(self):
        msg = CanonicalMessage.from_dict({
            "role": "user",
            "content": [
                {"type": "text", "text": "see"},
                {"type": "tool_result", "tool_use_id": "c1",
                 "content": [{"type": "text", "text": "out"}]},
            ],
        })
        assert msg.content[0] == TextBlock("see")
        assert msg.content[1] == ToolResultBlock(tool_use_id="c1", content=[TextBlock("out")])
        assert msg.has_tool_results

    def test_from_dict_tool_use(self):
        msg = CanonicalMessage.from_dict({
            "role": "assistant",
            "content": [{"type": "tool_use", "id": "c1", "name": "ls", "input": {}}],
        })
        assert msg.content == [ToolUseBlock(id="c1", name="ls", input={})]
        assert not msg.has_tool_results

    def test_from_dict_skips_unknown_blocks(self, caplog):
        with caplog.at_level("WARNING"):
            msg = CanonicalMessage.from_dict({
                "role": "user",
                "content": [{"type": "image", "source": {}}, {"type": "text", "text": "x"}],
            })
        assert msg.content == [TextBlock("x")]
        assert "image" in caplog.text

    def test_from_dict_reasoning_kind(self):
        msg = CanonicalMessage.from_dict(
            {"role": "assistant", "type": "reasoning", "content": "thinking"},
        )
        assert msg.kind == "reasoning"


class TestProviderParts:
    def test_function_response_rejects_nested_name(self):
        with pytest.raises(ValueError):
            FunctionResponsePart(name="f", response={"name": "f", "content": "x"})

    def test_wire_shapes(self):
        content = ProviderContent(
            role="model",
            parts=[
                TextPart("a"),
                FunctionCallPart(name="f", args={"x": 1}, thought_signature="s"),
            ],
        )
        assert content.to_wire() == {
            "role": "model",
            "parts": [
                {"text": "a"},
                {"functionCall": {"name": "f", "args": {"x": 1}}, "thoughtSignature": "s"},
            ],
        }


class TestToolDeclaration:
    def test_openai_shape(self):
        tool = ToolDeclaration.from_dict({
            "type": "function",
            "function": {"name": "t", "description": "d", "parameters": {"type": "object"}},
        })
        assert tool == ToolDeclaration(name="t", description="d", parameters={"type": "object"})

    def test_flat_shape(self):
        assert ToolDeclaration.from_dict({"name": "t"}) == ToolDeclaration(name="t")


class TestEvents:
    def test_type_tags(self):
        assert TextEvent("x").type == "text"
        assert UsageEvent(1, 2).type == "usage"

    def test_reasoning_config_wire(self):
        assert ReasoningConfig().to_wire() == {"includeThoughts": True}
