"""OpenAI-compatible chat provider adapter (OpenRouter by default).

Wraps the ``openai`` async client.  One instance serves one model; the
answer service receives an ordered list of instances and moves down the
list on failure.  OpenRouter asks callers to identify themselves through
``HTTP-Referer`` and ``X-Title`` headers, which are set on the client.
"""

from __future__ import annotations

import time

import openai
import structlog

from f1rag.config.settings import Settings
from f1rag.interfaces.llm_provider import ILLMProvider
from f1rag.utils.errors import LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


def build_openrouter_client(settings: Settings) -> openai.AsyncOpenAI:
    return openai.AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        timeout=settings.http_timeout,
        default_headers={
            "HTTP-Referer": settings.openrouter_referer,
            "X-Title": settings.openrouter_title,
        },
    )


class OpenAICompatibleLLMProvider(ILLMProvider):
    """Chat completions from one model behind an OpenAI-compatible API."""

    def __init__(
        self,
        settings: Settings,
        model: str,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self._api_key = settings.openrouter_api_key
        self._model = model
        self._client = client or build_openrouter_client(settings)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        start = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"OpenRouter rate limited {self._model}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"OpenRouter API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMError(
                message=f"{self._model} returned an empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openrouter_chat_complete",
            model=self._model,
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        return content.strip()

    def get_provider_name(self) -> str:
        return f"openrouter-{self._model}"

    def is_available(self) -> bool:
        return bool(self._api_key)
