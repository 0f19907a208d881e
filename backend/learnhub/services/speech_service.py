"""
LearnHub Backend: Text-to-Speech Service
==========================================

What:  Thin client for the Google Cloud Text-to-Speech REST endpoint.
How:   One POST per request with the API key as a query parameter. The voice
       is picked from the text itself: any Devanagari character selects the
       Hindi voice, everything else the Indian-English voice. Audio comes
       back base64-encoded MP3, which is passed through untouched.
"""

import logging
import re
from typing import Dict, Optional, Tuple

import httpx

from learnhub.config import settings
from learnhub.exceptions import SpeechServiceError

logger = logging.getLogger(__name__)

DEVANAGARI = re.compile(r"[ऀ-ॿ]")

HINDI_VOICE = ("hi-IN", "hi-IN-Standard-E")
ENGLISH_VOICE = ("en-IN", "en-IN-Standard-E")


def select_voice(text: str) -> Tuple[str, str]:
    """Returns (language_code, voice_name) for `text`."""
    return HINDI_VOICE if DEVANAGARI.search(text) else ENGLISH_VOICE


class SpeechService:
    """
    Google Cloud TTS adapter.

    The requested `lang` is accepted for compatibility with the client but
    the voice always follows the script of the text.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = settings.google_speech_api_key if api_key is None else api_key
        self.endpoint = endpoint or settings.tts_endpoint
        self.timeout = timeout or settings.tts_timeout

    def build_payload(self, text: str) -> Dict:
        language_code, voice_name = select_voice(text)
        return {
            "input": {"text": text},
            "voice": {"languageCode": language_code, "name": voice_name},
            "audioConfig": {"audioEncoding": "MP3"},
        }

    async def synthesize(self, text: str, lang: str = "en-GB") -> str:
        """
        Synthesizes `text` and returns base64 MP3 audio.

        Raises:
            SpeechServiceError: no API key, network failure, or non-2xx answer.
        """
        if not self.api_key:
            raise SpeechServiceError(message="API key not set")

        payload = self.build_payload(text)
        logger.info(
            "TTS request: %d chars, voice=%s (client lang=%s)",
            len(text),
            payload["voice"]["name"],
            lang,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("TTS request failed: %s", str(e))
            raise SpeechServiceError(context={"error": str(e)}) from e

        if response.status_code >= 300:
            # Upstream body may echo the key; keep it in logs only
            logger.error("Google TTS error %d: %s", response.status_code, response.text[:500])
            raise SpeechServiceError(context={"status": response.status_code})

        audio = response.json().get("audioContent")
        if not audio:
            raise SpeechServiceError(message="Speech synthesis returned no audio")
        return audio


speech_service = SpeechService()
