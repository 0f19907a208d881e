"""
LearnHub Backend: Google Gemini Service
=========================================

What:  LLMService implementation backed by Google Gemini.
How:   Each completion goes through a circuit breaker and a tenacity retry
       loop (exponential backoff with jitter). Failures after the last retry
       are translated into LLMServiceError so the route layer answers 503.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Circuit breaker so a Gemini outage fails fast instead of stacking
       30-second retry chains on every request
    3. Per-call timeout passed through `request_options`
"""

import logging
import time
import uuid
from typing import Optional

import google.generativeai as genai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from learnhub.config import settings
from learnhub.exceptions import CircuitBreakerOpenError, LLMServiceError
from learnhub.services.llm_base import Completion, LLMService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding calls to the AI provider.

    State Machine:
        CLOSED     normal operation; failures increment failure_count,
                   reaching the threshold moves to OPEN
        OPEN       every call raises CircuitBreakerOpenError until
                   recovery_timeout seconds have passed, then HALF_OPEN
        HALF_OPEN  one trial call; success → CLOSED, failure → OPEN

    The counters are plain attributes: all requests of a uvicorn worker run on
    one event loop, and each worker keeps its own breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True when a call may proceed.

        Raises:
            CircuitBreakerOpenError while OPEN and still inside the recovery window.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = max(int(self.recovery_timeout - elapsed), 1)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (trial call failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(LLMService):
    """
    Gemini text generation with retry and circuit breaking.

    Error Handling Chain:
        call fails → tenacity retries (retry_max_attempts, backoff + jitter)
        → all retries fail → breaker records one failure → LLMServiceError
        → threshold reached → later calls rejected instantly (OPEN)
        → recovery timeout → one trial call (HALF_OPEN)
    """

    def __init__(self):
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model_name = settings.gemini_model
        # Shared model for calls without a system instruction
        self.model = genai.GenerativeModel(self.model_name)

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.model_name,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    def _model_for(self, system: Optional[str]):
        # system_instruction is fixed per GenerativeModel instance
        if not system:
            return self.model
        return genai.GenerativeModel(self.model_name, system_instruction=system)

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> Completion:
        call_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info(
            "[%s] Gemini completion started (prompt=%d chars, max_tokens=%d)",
            call_id,
            len(prompt),
            max_tokens,
        )

        try:
            completion = await self._call_gemini_with_retry(
                prompt, system, max_tokens, temperature, call_id
            )
            self.circuit_breaker.record_success()
            return completion

        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini completion failed after %d attempts: %s",
                call_id,
                settings.retry_max_attempts,
                str(e),
                exc_info=True,
            )
            raise LLMServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"call_id": call_id, "error_type": type(e).__name__},
            ) from e

    @retry(
        # The SDK raises assorted google.api_core exceptions for API errors
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        # attempt 1 → ~2s, attempt 2 → ~4s, attempt 3 → ~8s (+ up to 1s jitter)
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(
        self,
        prompt: str,
        system: Optional[str],
        max_tokens: int,
        temperature: float,
        call_id: str,
    ) -> Completion:
        """Single Gemini request; retried by tenacity, breaker checked by the caller."""
        start_time = time.time()

        try:
            response = await self._model_for(system).generate_content_async(
                prompt,
                generation_config=genai.GenerationConfig(
                    max_output_tokens=max_tokens,
                    temperature=temperature,
                ),
                request_options={"timeout": settings.gemini_timeout},
            )
        except Exception as e:
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                call_id,
                (time.time() - start_time) * 1000,
                str(e),
            )
            raise

        text = response.text.strip() if response.text else ""
        usage = getattr(response, "usage_metadata", None)
        tokens_used = int(getattr(usage, "total_token_count", 0) or 0)

        logger.info(
            "[%s] Gemini completion finished in %.0fms, %d chars, %d tokens",
            call_id,
            (time.time() - start_time) * 1000,
            len(text),
            tokens_used,
        )
        return Completion(text=text, tokens_used=tokens_used, model=self.model_name)

    async def health_check(self) -> bool:
        """Lists models (no token cost) to verify key and connectivity."""
        try:
            model_names = [m.name for m in genai.list_models()]
            target = f"models/{settings.gemini_model}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


# Module-level instance: the circuit breaker state must be shared by all requests
gemini_service = GeminiService()
