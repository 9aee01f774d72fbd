"""Exception types raised by the Vertex streaming client."""

from __future__ import annotations

from dataclasses import dataclass


class VertexError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(VertexError):
    """Settings are missing or inconsistent for the selected endpoint."""


class VertexAPIError(VertexError):
    """The endpoint answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Vertex Express Error ({status_code}): {body}")


class MissingResponseBodyError(VertexError):
    """The endpoint answered successfully but sent no body to stream."""

    def __init__(self, message: str = "No response body") -> None:
        super().__init__(message)


class VertexTransportError(VertexError):
    """Connection-level failure while sending or streaming."""


class ToolCorrelationError(VertexError):
    """A tool result refers to a tool call id that never appeared."""

    def __init__(self, tool_use_id: str) -> None:
        self.tool_use_id = tool_use_id
        super().__init__(
            f"Tool result references unknown tool call id {tool_use_id!r}"
        )


@dataclass(frozen=True)
class StreamDecodeError:
    """A complete ``{...}`` span that failed to parse as JSON.

    Handed to the decoder's error reporter; never raised.
    """

    span: str
    cause: Exception

    def __str__(self) -> str:
        preview = self.span if len(self.span) <= 80 else self.span[:77] + "..."
        return f"{self.cause} in {preview!r}"
