"""
LearnHub Backend: Abstract LLM Service Interface
==================================================

What:  Contract for the chat-completion provider used by the coaching features
       (topic generation, speech feedback, calorie lookup, workout coach).
How:   Concrete providers subclass LLMService and implement complete().
       Callers only see `Completion` objects and LearnHub exceptions, so the
       provider can be swapped (or mocked in tests) without touching them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class Completion:
    """Text returned by the model plus the tokens billed for the call."""

    text: str
    tokens_used: int = 0
    model: str = ""


class LLMService(ABC):
    """
    Abstract interface for single-turn text generation.

    Contract:
        - complete() sends one user prompt (plus optional system instruction)
          and returns the generated text
        - implementations own their retry and circuit-breaker handling
        - provider errors surface as LLMServiceError or CircuitBreakerOpenError
    """

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> Completion:
        """
        Generate a completion for `prompt`.

        Args:
            prompt:       The user message.
            system:       Optional system instruction (persona, output format).
            max_tokens:   Upper bound on generated tokens.
            temperature:  Sampling temperature; low values for JSON answers.

        Returns:
            Completion with the stripped text. Text is never None; an empty
            string means the model produced nothing.

        Raises:
            LLMServiceError: The provider failed after all retries.
            CircuitBreakerOpenError: Recent failures tripped the breaker.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the provider is reachable. Must not consume quota."""
        ...
