"""Oracle endpoint configuration loaded from JSON or YAML."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Literal

import yaml
from pydantic import BaseModel, Field


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    vendor: Literal["openai", "gemini"] = "openai"
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    temperature: float | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


class AppConfig(BaseModel):
    """Application configuration root."""

    llm_routes: Dict[str, LlmRoute]


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk, choosing the parser by file suffix."""

    data = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return AppConfig.model_validate(yaml.safe_load(data) or {})
    return AppConfig.model_validate(json.loads(data))


def resolve_route(cfg: AppConfig, route_id: str) -> LlmRoute:
    """Return the named route or fail with the available ids."""

    if route_id not in cfg.llm_routes:
        known = ", ".join(sorted(cfg.llm_routes)) or "(none)"
        raise KeyError(f"Route '{route_id}' missing; configured routes: {known}")
    return cfg.llm_routes[route_id]
