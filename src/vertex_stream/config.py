"""Configuration management for vertex_stream."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class ModelSpec(BaseModel):
    default_temperature: float | None = None
    input_price: float = 0.0  # USD per million input tokens
    output_price: float = 0.0  # USD per million output tokens

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (
            input_tokens * self.input_price + output_tokens * self.output_price
        ) / 1_000_000


class VertexConfig(BaseModel):
    # Express mode: API key only
    api_key: str | None = None
    # Standard mode: project + bearer token
    project_id: str | None = None
    region: str = "us-central1"

    model: str = "gemini-2.5-flash"
    temperature: float | None = None  # None = model default, else 1.0
    max_output_tokens: int = 8192
    thinking_budget: int = 4096
    request_timeout: float = 600
    models: dict[str, ModelSpec] = Field(default_factory=dict)

    def model_spec(self, model_id: str) -> ModelSpec | None:
        return self.models.get(model_id)

    def default_temperature(self, model_id: str) -> float:
        if self.temperature is not None:
            return self.temperature
        spec = self.model_spec(model_id)
        if spec and spec.default_temperature is not None:
            return spec.default_temperature
        return 1.0

    def cost_for(self, model_id: str, input_tokens: int, output_tokens: int) -> float:
        """Cost of a call; 0.0 when the model has no pricing configured."""
        spec = self.model_spec(model_id)
        if spec is None:
            return 0.0
        return spec.cost(input_tokens, output_tokens)


CONFIG_FILENAME = "vertex_stream.yaml"


def load_config(
    config_path: str | Path | None = None,
) -> tuple[VertexConfig, Path | None]:
    """Load configuration from a YAML file.

    Returns (config, resolved_path).  *resolved_path* is ``None`` when
    no file was found and built-in defaults are used.

    Search order (first match wins):
      1. Explicit *config_path*
      2. Current working directory: ``./vertex_stream.yaml``
      3. User config dir: ``~/.vertex_stream/vertex_stream.yaml``
    """
    if config_path is None:
        for d in (Path.cwd(), Path.home() / ".vertex_stream"):
            p = d / CONFIG_FILENAME
            if p.exists():
                config_path = p
                break

    resolved: Path | None = Path(config_path) if config_path else None
    if resolved and resolved.exists():
        with open(resolved) as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
        return VertexConfig.model_validate(raw), resolved.resolve()

    if config_path is not None:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return VertexConfig(), None
