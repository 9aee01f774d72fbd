"""Canonical messages -> ``streamGenerateContent`` request body."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from vertex_stream.errors import ToolCorrelationError
from vertex_stream.types import (
    CanonicalMessage,
    FunctionCallPart,
    FunctionResponsePart,
    Part,
    ProviderContent,
    ReasoningConfig,
    TextBlock,
    TextPart,
    ToolDeclaration,
    ToolResultBlock,
    ToolUseBlock,
)

from .schema_sanitizer import sanitize_schema

_logger = logging.getLogger(__name__)

THINKING_SUFFIX = ":thinking"

DEFAULT_MAX_OUTPUT_TOKENS = 8192

HARM_CATEGORIES = (
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
)
SAFETY_THRESHOLD = "BLOCK_ONLY_HIGH"


def resolve_model_id(model_id: str) -> tuple[str, bool]:
    """Strip a trailing ``:thinking``.

    Returns ``(model id for the URL, reasoning required)``.
    """
    if model_id.endswith(THINKING_SUFFIX):
        return model_id[: -len(THINKING_SUFFIX)], True
    return model_id, False


def build_tool_identity_map(
    messages: Iterable[CanonicalMessage],
) -> dict[str, tuple[int, str]]:
    """Map every tool call id to ``(message position, tool name)``."""
    names: dict[str, tuple[int, str]] = {}
    for position, msg in enumerate(messages):
        for block in msg.content:
            if isinstance(block, ToolUseBlock):
                names[block.id] = (position, block.name)
    return names


def _provider_role(msg: CanonicalMessage) -> str:
    if msg.role == "assistant":
        return "model"
    if msg.has_tool_results:
        return "function"
    return "user"


def translate_message(
    msg: CanonicalMessage,
    tool_names: dict[str, tuple[int, str]],
    position: int,
    include_thought_signatures: bool = False,
) -> ProviderContent:
    """Convert the turn at *position* into provider content.

    Raises :class:`ToolCorrelationError` when a tool result points at an id
    missing from *tool_names* or used only at or after *position*.
    """
    parts: list[Part] = []
    for block in msg.content:
        if isinstance(block, TextBlock):
            parts.append(TextPart(text=block.text))
        elif isinstance(block, ToolUseBlock):
            parts.append(FunctionCallPart(name=block.name, args=block.input))
        elif isinstance(block, ToolResultBlock):
            entry = tool_names.get(block.tool_use_id)
            if entry is None or entry[0] >= position:
                raise ToolCorrelationError(block.tool_use_id)
            name = entry[1]
            parts.append(
                FunctionResponsePart(
                    name=name, response={"content": block.content_text()},
                )
            )
        else:
            raise TypeError(f"Unsupported content block: {type(block).__name__}")

    content = ProviderContent(role=_provider_role(msg), parts=parts)
    if include_thought_signatures and msg.thought_signature:
        first_call = next(
            (p for p in parts if isinstance(p, FunctionCallPart)), None,
        )
        if first_call is not None:
            first_call.thought_signature = msg.thought_signature
        else:
            content.thought_signature = msg.thought_signature
    return content


def translate_messages(
    messages: list[CanonicalMessage],
    include_thought_signatures: bool = False,
) -> list[ProviderContent]:
    """Translate a conversation, dropping internal reasoning annotations."""
    turns = [m for m in messages if m.kind != "reasoning"]
    dropped = len(messages) - len(turns)
    if dropped:
        _logger.debug("Dropped %d reasoning annotation(s) from request", dropped)
    tool_names = build_tool_identity_map(turns)
    return [
        translate_message(m, tool_names, position, include_thought_signatures)
        for position, m in enumerate(turns)
    ]


def build_function_declarations(
    tools: list[ToolDeclaration | dict[str, Any]],
) -> list[dict[str, Any]]:
    declarations: list[dict[str, Any]] = []
    for tool in tools:
        if isinstance(tool, dict):
            tool = ToolDeclaration.from_dict(tool)
        decl: dict[str, Any] = {"name": tool.name, "description": tool.description}
        if tool.parameters is not None:
            decl["parameters"] = sanitize_schema(tool.parameters)
        declarations.append(decl)
    return declarations


def build_request(
    system_instruction: str,
    messages: list[CanonicalMessage],
    *,
    tools: list[ToolDeclaration | dict[str, Any]] | None = None,
    reasoning: ReasoningConfig | None = None,
    temperature: float = 1.0,
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
) -> dict[str, Any]:
    """Build the JSON body for ``streamGenerateContent``."""
    contents = translate_messages(
        messages, include_thought_signatures=reasoning is not None,
    )

    generation_config: dict[str, Any] = {
        "temperature": temperature,
        "maxOutputTokens": max_output_tokens,
    }
    if reasoning is not None:
        generation_config["thinkingConfig"] = reasoning.to_wire()

    body: dict[str, Any] = {
        "systemInstruction": {"parts": [{"text": system_instruction}]},
        "contents": [c.to_wire() for c in contents],
        "generationConfig": generation_config,
        "safetySettings": [
            {"category": category, "threshold": SAFETY_THRESHOLD}
            for category in HARM_CATEGORIES
        ],
    }
    if tools:
        body["tools"] = [{"functionDeclarations": build_function_declarations(tools)}]
    return body
