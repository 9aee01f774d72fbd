"""Async streaming client for Vertex AI Gemini models.

Sends ``streamGenerateContent`` requests with ``httpx.AsyncClient`` and
exposes the response as an async iterator of typed stream events.

Two endpoint strategies exist and are picked per call from the
credentials present: :class:`ExpressEndpoint` (API key only) and
:class:`ProjectEndpoint` (GCP project + bearer token from a caller-supplied
token provider).  No retries happen here.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Awaitable, Callable, Union

import httpx

from vertex_stream.config import VertexConfig
from vertex_stream.errors import (
    ConfigurationError,
    MissingResponseBodyError,
    VertexAPIError,
    VertexTransportError,
)
from vertex_stream.types import (
    CanonicalMessage,
    ReasoningConfig,
    ResponseMetadata,
    StreamEvent,
    TextEvent,
    ToolDeclaration,
)

from .request_translator import build_request, resolve_model_id
from .response_translator import CostFn, ResponseState, finish, translate_response
from .stream_decoder import DecoderState, ErrorReporter, feed

_logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Union[str, Awaitable[str]]]


# ---------------------------------------------------------------------------
# Endpoint strategies
# ---------------------------------------------------------------------------

@dataclass
class ExpressEndpoint:
    """Vertex AI Express mode: API key in the query string, no project."""

    api_key: str
    base_url: str = "https://aiplatform.googleapis.com/v1beta1"

    def url(self, model_id: str) -> str:
        return f"{self.base_url}/publishers/google/models/{model_id}:streamGenerateContent"

    def params(self) -> dict[str, str]:
        return {"key": self.api_key}

    async def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}


@dataclass
class ProjectEndpoint:
    """Standard Vertex AI: regional project endpoint with a bearer token."""

    project_id: str
    region: str
    token_provider: TokenProvider

    def url(self, model_id: str) -> str:
        return (
            f"https://{self.region}-aiplatform.googleapis.com/v1/projects/"
            f"{self.project_id}/locations/{self.region}/publishers/google/"
            f"models/{model_id}:streamGenerateContent"
        )

    def params(self) -> dict[str, str]:
        return {}

    async def headers(self) -> dict[str, str]:
        token = self.token_provider()
        if inspect.isawaitable(token):
            token = await token
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }


Endpoint = Union[ExpressEndpoint, ProjectEndpoint]


def select_endpoint(
    config: VertexConfig, token_provider: TokenProvider | None = None,
) -> Endpoint:
    """Express mode when an API key is configured, else the project endpoint."""
    if config.api_key:
        return ExpressEndpoint(api_key=config.api_key)
    if not config.project_id:
        raise ConfigurationError(
            "Either api_key (Express mode) or project_id is required",
        )
    if token_provider is None:
        raise ConfigurationError(
            "project_id is set but no token_provider was given",
        )
    return ProjectEndpoint(
        project_id=config.project_id,
        region=config.region,
        token_provider=token_provider,
    )


# ---------------------------------------------------------------------------
# Message stream
# ---------------------------------------------------------------------------

class MessageStream:
    """Async iterator over the events of one request.

    ``metadata`` is updated as objects arrive, so it can be read during or
    after iteration.  Call :meth:`aclose` (or exhaust the stream) to release
    the HTTP response.
    """

    def __init__(
        self,
        produce: Callable[[MessageStream], AsyncGenerator[StreamEvent, None]],
    ) -> None:
        self.metadata = ResponseMetadata()
        self._events = produce(self)

    def __aiter__(self) -> MessageStream:
        return self

    async def __anext__(self) -> StreamEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        await self._events.aclose()


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class VertexClient:
    """Streaming client for Gemini models on Vertex AI."""

    def __init__(
        self,
        config: VertexConfig,
        *,
        token_provider: TokenProvider | None = None,
        cost_fn: CostFn | None = None,
        on_decode_error: ErrorReporter | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._token_provider = token_provider
        self._cost_fn = cost_fn or config.cost_for
        self._on_decode_error = on_decode_error
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout, connect=30),
        )
        self._last_metadata: ResponseMetadata | None = None

    def create_message(
        self,
        system_instruction: str,
        messages: list[CanonicalMessage | dict[str, Any]],
        *,
        tools: list[ToolDeclaration | dict[str, Any]] | None = None,
        reasoning: ReasoningConfig | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
        model: str | None = None,
    ) -> MessageStream:
        """Start a streaming request.

        Nothing is sent until the returned stream is first iterated.
        """
        canonical = [
            m if isinstance(m, CanonicalMessage) else CanonicalMessage.from_dict(m)
            for m in messages
        ]
        return MessageStream(
            lambda stream: self._stream_events(
                stream,
                system_instruction,
                canonical,
                tools=tools,
                reasoning=reasoning,
                temperature=temperature,
                max_output_tokens=max_output_tokens,
                model=model,
            )
        )

    async def _stream_events(
        self,
        stream: MessageStream,
        system_instruction: str,
        messages: list[CanonicalMessage],
        *,
        tools: list[ToolDeclaration | dict[str, Any]] | None,
        reasoning: ReasoningConfig | None,
        temperature: float | None,
        max_output_tokens: int | None,
        model: str | None,
    ) -> AsyncGenerator[StreamEvent, None]:
        model_id, requires_reasoning = resolve_model_id(model or self.config.model)
        if requires_reasoning and reasoning is None:
            reasoning = ReasoningConfig(budget_tokens=self.config.thinking_budget)

        endpoint = select_endpoint(self.config, self._token_provider)
        body = build_request(
            system_instruction,
            messages,
            tools=tools,
            reasoning=reasoning,
            temperature=(
                temperature
                if temperature is not None
                else self.config.default_temperature(model_id)
            ),
            max_output_tokens=max_output_tokens or self.config.max_output_tokens,
        )
        headers = await endpoint.headers()
        _logger.debug(
            "POST %s (%s, %d content(s), tools=%d, reasoning=%s)",
            endpoint.url(model_id),
            type(endpoint).__name__,
            len(body["contents"]),
            len(tools or []),
            reasoning is not None,
        )

        decoder = DecoderState()
        state = ResponseState()
        self._last_metadata = stream.metadata

        try:
            async with self._client.stream(
                "POST",
                endpoint.url(model_id),
                params=endpoint.params(),
                headers=headers,
                json=body,
            ) as resp:
                if not resp.is_success:
                    await resp.aread()
                    raise VertexAPIError(resp.status_code, resp.text)
                if resp.status_code == 204:
                    raise MissingResponseBodyError()

                async for chunk in resp.aiter_text():
                    decoder, objects = feed(decoder, chunk, self._on_decode_error)
                    for obj in objects:
                        state, events = translate_response(
                            state, obj, self._cost_fn, model_id,
                        )
                        stream.metadata = state.metadata
                        self._last_metadata = state.metadata
                        for event in events:
                            yield event
        except httpx.TransportError as e:
            raise VertexTransportError(f"Vertex stream failed: {e}") from e

        if decoder.depth > 0:
            _logger.warning(
                "Stream ended inside an unterminated JSON object (%d chars dropped)",
                len(decoder.buffer),
            )
        for event in finish(state):
            yield event

    async def complete_prompt(self, prompt: str, **kwargs: Any) -> str:
        """Single-turn request; returns the concatenated answer text."""
        stream = self.create_message(
            "", [CanonicalMessage(role="user", content=prompt)], **kwargs,
        )
        text: list[str] = []
        async for event in stream:
            if isinstance(event, TextEvent):
                text.append(event.text)
        return "".join(text)

    @property
    def last_metadata(self) -> ResponseMetadata | None:
        """Metadata captured by the most recent ``create_message()`` stream."""
        return self._last_metadata

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
