"""Text-to-speech request/response models."""

from typing import Optional

from learnhub.schemas.common import CamelModel


class TTSRequest(CamelModel):
    text: Optional[str] = None
    lang: str = "en-GB"


class TTSResponse(CamelModel):
    audio_content: str
