"""
LearnHub Backend: Text-to-Speech Service Tests
================================================

What:  Voice selection and the Google TTS request/response handling.
How:   httpx.MockTransport stands in for the Google endpoint; no network.
"""

import json

import httpx
import pytest

from learnhub.exceptions import SpeechServiceError
from learnhub.services.speech_service import SpeechService, select_voice

ENDPOINT = "https://tts.test/v1/text:synthesize"


@pytest.fixture
def mock_google(monkeypatch):
    """
    Routes every httpx.AsyncClient through a MockTransport.

    Returns (captured_requests, responses); replace `responses[0]` to change
    what the fake endpoint answers.
    """
    captured = []
    responses = [httpx.Response(200, json={"audioContent": "SUQzBAAAAA=="})]
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return responses[0]

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)
    return captured, responses


class TestSelectVoice:

    def test_latin_text_uses_indian_english(self):
        assert select_voice("Good morning") == ("en-IN", "en-IN-Standard-E")

    def test_devanagari_uses_hindi(self):
        assert select_voice("नमस्ते, how are you?") == ("hi-IN", "hi-IN-Standard-E")


class TestSynthesize:

    @pytest.mark.asyncio
    async def test_returns_audio_and_sends_key(self, mock_google):
        captured, _ = mock_google
        service = SpeechService(api_key="secret", endpoint=ENDPOINT)

        audio = await service.synthesize("Hello there", lang="en-GB")

        assert audio == "SUQzBAAAAA=="
        request = captured[0]
        assert request.url.params["key"] == "secret"
        body = json.loads(request.content)
        assert body == {
            "input": {"text": "Hello there"},
            "voice": {"languageCode": "en-IN", "name": "en-IN-Standard-E"},
            "audioConfig": {"audioEncoding": "MP3"},
        }

    @pytest.mark.asyncio
    async def test_missing_key(self, mock_google):
        captured, _ = mock_google
        service = SpeechService(api_key="", endpoint=ENDPOINT)

        with pytest.raises(SpeechServiceError, match="API key not set"):
            await service.synthesize("Hello")
        assert captured == []

    @pytest.mark.asyncio
    async def test_upstream_error(self, mock_google):
        _, responses = mock_google
        responses[0] = httpx.Response(403, json={"error": {"message": "API key invalid"}})
        service = SpeechService(api_key="secret", endpoint=ENDPOINT)

        with pytest.raises(SpeechServiceError, match="Speech synthesis failed"):
            await service.synthesize("Hello")

    @pytest.mark.asyncio
    async def test_no_audio_in_answer(self, mock_google):
        _, responses = mock_google
        responses[0] = httpx.Response(200, json={})
        service = SpeechService(api_key="secret", endpoint=ENDPOINT)

        with pytest.raises(SpeechServiceError, match="no audio"):
            await service.synthesize("Hello")
