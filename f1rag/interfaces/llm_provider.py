"""Abstract base class for chat-completion providers used for answer synthesis."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: BedrockLLMProvider, OpenAICompatibleLLMProvider
# Located in: f1rag/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM backends consumed by the answer service."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """Generate a completion.

        Parameters
        ----------
        system_prompt:
            Instructions for the model's role and answer style.
        user_prompt:
            The question together with the retrieved context.
        temperature:
            Sampling temperature.
        max_tokens:
            Upper bound on generated tokens.

        Returns
        -------
        str
            The generated text, stripped.

        Raises
        ------
        f1rag.utils.errors.LLMError
            If the call fails or returns no text.
        f1rag.utils.errors.RateLimitError
            If the provider throttled the request.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return an identifier such as ``"bedrock-anthropic.claude-3-haiku"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
