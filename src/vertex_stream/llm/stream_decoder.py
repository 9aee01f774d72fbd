"""Incremental decoder for back-to-back JSON objects.

``streamGenerateContent`` sends a sequence of complete JSON objects with no
delimiter and no framing that lines up with network chunks.  The decoder
scans characters with a small state machine (outside string / inside string
/ after backslash) and a brace depth counter, and yields each object once
its closing brace arrives.

State is an immutable :class:`DecoderState` threaded through :func:`feed`,
so a session is just a local variable and two sessions can never touch each
other's state.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from vertex_stream.errors import StreamDecodeError

_logger = logging.getLogger(__name__)

ErrorReporter = Callable[[StreamDecodeError], None]


@dataclass(frozen=True)
class DecoderState:
    """Resumable scan state for one stream.

    ``object_start`` and ``scan_pos`` index into ``buffer``, which only ever
    holds the not-yet-consumed tail of the stream.
    """

    buffer: str = ""
    in_string: bool = False
    escaped: bool = False
    depth: int = 0
    object_start: int = -1
    scan_pos: int = 0


def log_decode_error(error: StreamDecodeError) -> None:
    """Default error reporter: log and move on."""
    _logger.warning("Skipping malformed JSON object in stream: %s", error)


def feed(
    state: DecoderState,
    chunk: str,
    on_error: ErrorReporter | None = None,
) -> tuple[DecoderState, list[Any]]:
    """Scan *chunk* on top of *state*.

    Returns the new state and every object completed by this chunk, in
    stream order.  Spans that close but fail to parse go to *on_error* and
    are dropped.
    """
    report = on_error or log_decode_error
    buffer = state.buffer + chunk
    in_string = state.in_string
    escaped = state.escaped
    depth = state.depth
    start = state.object_start
    objects: list[Any] = []
    consumed = 0  # buffer[:consumed] holds finished objects and framing

    i = state.scan_pos
    while i < len(buffer):
        ch = buffer[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                span = buffer[start : i + 1]
                try:
                    objects.append(json.loads(span))
                except json.JSONDecodeError as exc:
                    report(StreamDecodeError(span=span, cause=exc))
                consumed = i + 1
                start = -1
        i += 1

    if depth == 0:
        # Nothing in progress; any framing between objects is disposable
        buffer = ""
    elif consumed:
        # Compact once; the open object starts after everything consumed
        buffer = buffer[consumed:]
        start -= consumed

    return (
        DecoderState(
            buffer=buffer,
            in_string=in_string,
            escaped=escaped,
            depth=depth,
            object_start=start,
            scan_pos=len(buffer),
        ),
        objects,
    )


class StreamDecoder:
    """Holds the :class:`DecoderState` of a single stream.

    Convenience for callers that prefer an object to threading state by
    hand.  One instance per stream; do not share.
    """

    def __init__(self, on_error: ErrorReporter | None = None) -> None:
        self.state = DecoderState()
        self._on_error = on_error

    def feed(self, chunk: str) -> list[Any]:
        self.state, objects = feed(self.state, chunk, self._on_error)
        return objects

    @property
    def pending(self) -> str:
        """Text of an object that has started but not yet closed."""
        return self.state.buffer


def decode_all(
    chunks: Iterable[str],
    on_error: ErrorReporter | None = None,
) -> list[Any]:
    """Decode every object from an already-available sequence of chunks."""
    state = DecoderState()
    result: list[Any] = []
    for chunk in chunks:
        state, objects = feed(state, chunk, on_error)
        result.extend(objects)
    return result
