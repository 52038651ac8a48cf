from __future__ import annotations  # Oracle adapter exports

from .llm_gateway import (
    GeminiOracle,
    HttpOracle,
    OpenAICompatibleOracle,
    Oracle,
    ask,
    build_oracle,
    extract_text,
)

__all__ = [
    "GeminiOracle",
    "HttpOracle",
    "OpenAICompatibleOracle",
    "Oracle",
    "ask",
    "build_oracle",
    "extract_text",
]
