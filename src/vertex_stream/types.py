"""Shared data types for vertex_stream."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union

_logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextEvent:
    """A piece of answer text."""

    text: str
    type: str = field(default="text", init=False)


@dataclass(frozen=True)
class ReasoningEvent:
    """Model "thinking" content, separate from the answer."""

    text: str
    type: str = field(default="reasoning", init=False)


@dataclass(frozen=True)
class ToolCallPartialEvent:
    """Incremental disclosure of one tool invocation.

    The first event for an ``index`` carries ``name``; later ones carry
    ``arguments`` fragments (JSON text).  ``id`` is the same on both.
    """

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None
    type: str = field(default="tool_call_partial", init=False)


@dataclass(frozen=True)
class UsageEvent:
    """Token accounting for one response."""

    input_tokens: int
    output_tokens: int
    total_cost: float | None = None
    reasoning_tokens: int | None = None
    cache_read_tokens: int | None = None
    type: str = field(default="usage", init=False)


@dataclass(frozen=True)
class GroundingSource:
    title: str
    url: str


@dataclass(frozen=True)
class GroundingEvent:
    """Citations the model attached to its answer."""

    sources: tuple[GroundingSource, ...]
    type: str = field(default="grounding", init=False)


StreamEvent = Union[
    TextEvent, ReasoningEvent, ToolCallPartialEvent, UsageEvent, GroundingEvent
]


@dataclass(frozen=True)
class ResponseMetadata:
    """Session-scoped values captured from the response, not emitted as events."""

    response_id: str | None = None
    thought_signature: str | None = None


# ---------------------------------------------------------------------------
# Canonical (provider-neutral) messages
# ---------------------------------------------------------------------------

@dataclass
class TextBlock:
    text: str


@dataclass
class ToolUseBlock:
    """A tool invocation made by the assistant."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResultBlock:
    """The result of a tool invocation, correlated by ``tool_use_id``."""

    tool_use_id: str
    content: str | list[TextBlock] = ""

    def content_text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "\n\n".join(block.text for block in self.content)


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]


def _block_from_dict(raw: dict[str, Any]) -> ContentBlock | None:
    kind = raw.get("type")
    if kind == "text":
        return TextBlock(text=raw.get("text", ""))
    if kind == "tool_use":
        return ToolUseBlock(
            id=raw["id"], name=raw["name"], input=raw.get("input") or {},
        )
    if kind == "tool_result":
        content = raw.get("content", "")
        if isinstance(content, list):
            content = [
                TextBlock(text=item.get("text", ""))
                for item in content
                if item.get("type") == "text"
            ]
        return ToolResultBlock(tool_use_id=raw["tool_use_id"], content=content)
    _logger.warning("Skipping unsupported content block type: %r", kind)
    return None


@dataclass
class CanonicalMessage:
    """One conversation turn.

    ``kind="reasoning"`` marks an internal reasoning annotation that is not
    a real turn.  ``thought_signature`` is the opaque continuation token a
    previous response carried, replayed when reasoning is enabled.
    """

    role: str  # "user" | "assistant"
    content: list[ContentBlock] = field(default_factory=list)
    kind: str | None = None
    thought_signature: str | None = None

    def __post_init__(self) -> None:
        if self.role not in ("user", "assistant"):
            raise ValueError(f"Unsupported message role: {self.role!r}")
        if isinstance(self.content, str):
            self.content = [TextBlock(text=self.content)]

    @property
    def has_tool_results(self) -> bool:
        return any(isinstance(b, ToolResultBlock) for b in self.content)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CanonicalMessage:
        """Build from the common ``{"role", "content"}`` dict shape."""
        content = raw.get("content", "")
        blocks: list[ContentBlock] = []
        if isinstance(content, str):
            blocks.append(TextBlock(text=content))
        else:
            for item in content:
                block = _block_from_dict(item)
                if block is not None:
                    blocks.append(block)
        return cls(
            role=raw["role"],
            content=blocks,
            kind=raw.get("type"),
            thought_signature=raw.get("thought_signature"),
        )


# ---------------------------------------------------------------------------
# Provider (Gemini) content
# ---------------------------------------------------------------------------

@dataclass
class TextPart:
    text: str

    def to_wire(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass
class FunctionCallPart:
    name: str
    args: dict[str, Any]
    thought_signature: str | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "functionCall": {"name": self.name, "args": self.args},
        }
        if self.thought_signature:
            wire["thoughtSignature"] = self.thought_signature
        return wire


@dataclass
class FunctionResponsePart:
    """Tool output sent back to the model.

    ``name`` lives only at this level; ``response`` never repeats it.
    """

    name: str
    response: dict[str, Any]

    def __post_init__(self) -> None:
        if "name" in self.response:
            raise ValueError("FunctionResponsePart.response must not carry 'name'")

    def to_wire(self) -> dict[str, Any]:
        return {"functionResponse": {"name": self.name, "response": self.response}}


Part = Union[TextPart, FunctionCallPart, FunctionResponsePart]


@dataclass
class ProviderContent:
    role: str  # "user" | "model" | "function"
    parts: list[Part] = field(default_factory=list)
    thought_signature: str | None = None

    def to_wire(self) -> dict[str, Any]:
        parts = [p.to_wire() for p in self.parts]
        # Signature on a content without a function call rides on its first part
        if (
            self.thought_signature
            and parts
            and not any(isinstance(p, FunctionCallPart) for p in self.parts)
        ):
            parts[0]["thoughtSignature"] = self.thought_signature
        return {"role": self.role, "parts": parts}


# ---------------------------------------------------------------------------
# Tool declarations
# ---------------------------------------------------------------------------

@dataclass
class ToolDeclaration:
    """A function the model may call."""

    name: str
    description: str = ""
    parameters: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ToolDeclaration:
        """Accept either ``{"name", ...}`` or OpenAI ``{"type": "function", "function": {...}}``."""
        func = raw.get("function", raw) if raw.get("type") == "function" else raw
        return cls(
            name=func["name"],
            description=func.get("description", ""),
            parameters=func.get("parameters"),
        )


@dataclass
class ReasoningConfig:
    """Thinking settings sent as ``generationConfig.thinkingConfig``."""

    budget_tokens: int | None = None
    include_thoughts: bool = True

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"includeThoughts": self.include_thoughts}
        if self.budget_tokens is not None:
            wire["thinkingBudget"] = self.budget_tokens
        return wire
