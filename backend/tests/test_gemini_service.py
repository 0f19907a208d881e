"""
LearnHub Backend: Gemini Service Unit Tests (Mocked)
======================================================

What:  CircuitBreaker state machine and GeminiService.complete() with the
       google-generativeai SDK patched out.
How:   No network: genai is replaced by a MagicMock, and failure tests patch
       the tenacity-wrapped call so no backoff sleeps run.
"""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from learnhub.exceptions import CircuitBreakerOpenError, LLMServiceError
from learnhub.services.gemini_service import CircuitBreaker, GeminiService
from learnhub.services.llm_base import Completion


class TestCircuitBreaker:
    """Tests for the CircuitBreaker resilience pattern."""

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_opens_at_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

    def test_open_circuit_rejects_calls(self):
        """OPEN breaker raises with the remaining recovery time."""
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 1 <= exc_info.value.recovery_time <= 60

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        assert cb.failure_count == 2

        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == "closed"

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        assert cb.state == "open"

        time.sleep(0.01)
        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_failed_trial_call_reopens(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"

    def test_success_after_half_open_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0


class TestGeminiServiceMocked:
    """GeminiService.complete() against a mocked SDK."""

    @pytest.mark.asyncio
    async def test_complete_success(self):
        """Text is stripped and the billed token count is reported."""
        with patch('learnhub.services.gemini_service.genai') as mock_genai:
            mock_response = MagicMock()
            mock_response.text = "  Morning routines\n"
            mock_response.usage_metadata = MagicMock(total_token_count=120)

            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiService()
            result = await service.complete("Generate topics", max_tokens=150)

            assert isinstance(result, Completion)
            assert result.text == "Morning routines"
            assert result.tokens_used == 120
            assert result.model == service.model_name
            mock_model.generate_content_async.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_system_instruction_builds_dedicated_model(self):
        with patch('learnhub.services.gemini_service.genai') as mock_genai:
            mock_response = MagicMock()
            mock_response.text = "ok"
            mock_response.usage_metadata = None
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiService()
            result = await service.complete("hi", system="You are a coach")

            assert result.tokens_used == 0
            mock_genai.GenerativeModel.assert_called_with(
                service.model_name, system_instruction="You are a coach"
            )

    @pytest.mark.asyncio
    async def test_complete_failure_raises_llm_error(self):
        """Exhausted retries surface as LLMServiceError and count as one failure."""
        with patch('learnhub.services.gemini_service.genai'):
            service = GeminiService()

            with patch.object(
                service,
                '_call_gemini_with_retry',
                AsyncMock(side_effect=RuntimeError("quota exceeded")),
            ):
                with pytest.raises(LLMServiceError) as exc_info:
                    await service.complete("hello")

            assert exc_info.value.retry_after == service.circuit_breaker.recovery_timeout
            assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_complete_circuit_breaker_open(self):
        """An open breaker rejects the call before the SDK is touched."""
        with patch('learnhub.services.gemini_service.genai'):
            service = GeminiService()
            for _ in range(service.circuit_breaker.failure_threshold):
                service.circuit_breaker.record_failure()

            call = AsyncMock()
            with patch.object(service, '_call_gemini_with_retry', call):
                with pytest.raises(CircuitBreakerOpenError):
                    await service.complete("hello")
            call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_health_check_true_when_models_listed(self):
        with patch('learnhub.services.gemini_service.genai') as mock_genai:
            mock_genai.list_models.return_value = [MagicMock()]

            service = GeminiService()
            assert await service.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_false_on_error(self):
        with patch('learnhub.services.gemini_service.genai') as mock_genai:
            mock_genai.list_models.side_effect = RuntimeError("no network")

            service = GeminiService()
            assert await service.health_check() is False
