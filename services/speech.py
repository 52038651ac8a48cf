from __future__ import annotations  # Speech capability interfaces

from dataclasses import dataclass
from typing import Optional, Protocol


class StreamingTokenProvider(Protocol):  # Issues short-lived speech-to-text streaming tokens
    def get_streaming_token(self) -> str: ...


class SpeechSynthesizer(Protocol):  # Renders text to audio bytes
    def synthesize(self, text: str) -> bytes: ...


@dataclass
class SpeechServices:  # Optional providers; an absent one means the capability is not offered
    token_provider: Optional[StreamingTokenProvider] = None
    synthesizer: Optional[SpeechSynthesizer] = None
    audio_media_type: str = "audio/mpeg"


__all__ = ["SpeechServices", "SpeechSynthesizer", "StreamingTokenProvider"]
