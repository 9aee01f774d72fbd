"""Request/response translation and streaming client for Vertex AI Gemini."""

from vertex_stream.llm.client import (
    ExpressEndpoint,
    MessageStream,
    ProjectEndpoint,
    VertexClient,
    select_endpoint,
)
from vertex_stream.llm.request_translator import build_request, resolve_model_id
from vertex_stream.llm.response_translator import (
    ResponseState,
    finish,
    translate_response,
)
from vertex_stream.llm.schema_sanitizer import sanitize_schema
from vertex_stream.llm.stream_decoder import (
    DecoderState,
    StreamDecoder,
    decode_all,
    feed,
)

__all__ = [
    "DecoderState",
    "ExpressEndpoint",
    "MessageStream",
    "ProjectEndpoint",
    "ResponseState",
    "StreamDecoder",
    "VertexClient",
    "build_request",
    "decode_all",
    "feed",
    "finish",
    "resolve_model_id",
    "sanitize_schema",
    "select_endpoint",
    "translate_response",
]
