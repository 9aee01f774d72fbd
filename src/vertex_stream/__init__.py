"""vertex_stream: streaming Gemini client for Vertex AI."""

__version__ = "0.1.0"
