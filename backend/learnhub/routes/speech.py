"""
LearnHub Backend: Text-to-Speech Route
========================================

What:  POST /api/tts-google proxies text to Google Cloud Text-to-Speech.
How:   SpeechService picks the voice (Hindi for Devanagari text, Indian
       English otherwise) and returns base64 MP3 audio.
"""

import logging

from fastapi import APIRouter

from learnhub.exceptions import ValidationError
from learnhub.schemas.common import ErrorResponse
from learnhub.schemas.speech import TTSRequest, TTSResponse
from learnhub.services.speech_service import speech_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Speech"])


@router.post(
    "/tts-google",
    response_model=TTSResponse,
    responses={
        400: {"description": "Empty text", "model": ErrorResponse},
        500: {"description": "Synthesis failed or API key missing", "model": ErrorResponse},
    },
    summary="Synthesize speech",
)
async def text_to_speech(body: TTSRequest) -> TTSResponse:
    if not body.text or not body.text.strip():
        raise ValidationError(message="Text is required", field="text")

    audio = await speech_service.synthesize(body.text, body.lang)
    return TTSResponse(audio_content=audio)
