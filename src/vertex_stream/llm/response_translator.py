"""Decoded response objects -> typed stream events.

Each object from the stream decoder goes through :func:`translate_response`
together with the session's :class:`ResponseState`; the function returns
the next state and the events for that object.  :func:`finish` flushes
what only makes sense once the stream has ended (grounding sources).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from vertex_stream.types import (
    GroundingEvent,
    GroundingSource,
    ReasoningEvent,
    ResponseMetadata,
    StreamEvent,
    TextEvent,
    ToolCallPartialEvent,
    UsageEvent,
)

_logger = logging.getLogger(__name__)

# cost_fn(model_id, input_tokens, output_tokens) -> USD
CostFn = Callable[[str, int, int], float]

_THINK_TAG = re.compile(r"<(/?)think(?:\s[^>]*)?>", re.IGNORECASE)


@dataclass(frozen=True)
class ResponseState:
    """Per-session translation state.

    ``in_thinking`` spans decoded objects: a ``<think>`` opened in one
    object may close several objects later.
    """

    in_thinking: bool = False
    tool_call_seq: int = 0
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)
    sources: tuple[GroundingSource, ...] = ()


# ---------------------------------------------------------------------------
# Thinking tags
# ---------------------------------------------------------------------------

def split_thinking(text: str, in_thinking: bool) -> tuple[list[StreamEvent], bool]:
    """Split *text* on ``<think>``/``</think>`` boundaries.

    Returns the events and whether the text ends inside a thinking span.
    """
    events: list[StreamEvent] = []
    pos = 0
    for match in _THINK_TAG.finditer(text):
        segment = text[pos : match.start()]
        if segment:
            events.append(ReasoningEvent(segment) if in_thinking else TextEvent(segment))
        in_thinking = not match.group(1)
        pos = match.end()
    tail = text[pos:]
    if tail:
        events.append(ReasoningEvent(tail) if in_thinking else TextEvent(tail))
    return events, in_thinking


# ---------------------------------------------------------------------------
# Metadata helpers
# ---------------------------------------------------------------------------

def _usage_event(
    usage: dict[str, Any], cost_fn: CostFn | None, model_id: str,
) -> UsageEvent:
    input_tokens = usage.get("promptTokenCount", usage.get("prompt_token_count", 0)) or 0
    output_tokens = (
        usage.get("candidatesTokenCount", usage.get("candidates_token_count", 0)) or 0
    )
    reasoning = usage.get("thoughtsTokenCount", usage.get("thoughts_token_count"))
    cached = usage.get(
        "cachedContentTokenCount", usage.get("cached_content_token_count"),
    )
    cost = cost_fn(model_id, input_tokens, output_tokens) if cost_fn else None
    return UsageEvent(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_cost=cost,
        reasoning_tokens=reasoning,
        cache_read_tokens=cached,
    )


def _grounding_sources(grounding: dict[str, Any]) -> list[GroundingSource]:
    sources: list[GroundingSource] = []
    for chunk in grounding.get("groundingChunks") or []:
        web = chunk.get("web") or {}
        url = web.get("uri") or web.get("url")
        if url:
            sources.append(GroundingSource(title=web.get("title") or url, url=url))
    return sources


def _merge_sources(
    known: tuple[GroundingSource, ...], new: list[GroundingSource],
) -> tuple[GroundingSource, ...]:
    seen = {s.url for s in known}
    merged = list(known)
    for source in new:
        if source.url not in seen:
            seen.add(source.url)
            merged.append(source)
    return tuple(merged)


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

def translate_response(
    state: ResponseState,
    obj: dict[str, Any],
    cost_fn: CostFn | None = None,
    model_id: str = "",
) -> tuple[ResponseState, list[StreamEvent]]:
    """Translate one decoded response object."""
    if not isinstance(obj, dict):
        _logger.warning("Ignoring non-object stream value: %r", type(obj).__name__)
        return state, []

    events: list[StreamEvent] = []
    in_thinking = state.in_thinking
    seq = state.tool_call_seq
    metadata = state.metadata
    sources = state.sources

    if obj.get("responseId"):
        metadata = replace(metadata, response_id=obj["responseId"])

    candidates = obj.get("candidates") or []
    candidate = candidates[0] if candidates else {}
    parts = (candidate.get("content") or {}).get("parts") or []

    for part in parts:
        if part.get("thoughtSignature"):
            metadata = replace(metadata, thought_signature=part["thoughtSignature"])

        if part.get("thought"):
            if part.get("text"):
                events.append(ReasoningEvent(part["text"]))
        elif part.get("text"):
            text_events, in_thinking = split_thinking(part["text"], in_thinking)
            events.extend(text_events)
        elif part.get("functionCall"):
            call = part["functionCall"]
            name = call.get("name", "")
            call_id = f"{name}-{seq}"
            events.append(ToolCallPartialEvent(index=seq, id=call_id, name=name))
            events.append(
                ToolCallPartialEvent(
                    index=seq,
                    id=call_id,
                    arguments=json.dumps(call.get("args") or {}),
                )
            )
            seq += 1
        elif set(part) - {"thoughtSignature", "text"}:
            _logger.warning(
                "Ignoring unsupported response part with keys %s", sorted(part),
            )

    grounding = candidate.get("groundingMetadata") or obj.get("groundingMetadata")
    if grounding:
        sources = _merge_sources(sources, _grounding_sources(grounding))

    usage = obj.get("usageMetadata") or obj.get("usage_metadata")
    if usage:
        events.append(_usage_event(usage, cost_fn, model_id))

    return (
        ResponseState(
            in_thinking=in_thinking,
            tool_call_seq=seq,
            metadata=metadata,
            sources=sources,
        ),
        events,
    )


def finish(state: ResponseState) -> list[StreamEvent]:
    """Events emitted once at end of stream."""
    if state.sources:
        return [GroundingEvent(sources=state.sources)]
    return []
