"""Unit tests for AnswerService: provider failover and context-only answers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from f1rag.interfaces.llm_provider import ILLMProvider
from f1rag.models.document import SearchFilters, SearchResult
from f1rag.services.answer_service import (
    NO_INFORMATION_ANSWER,
    AnswerService,
    build_fallback_answer,
    build_user_prompt,
)
from f1rag.services.retrieval_service import RetrievalService
from f1rag.utils.errors import LLMError, RateLimitError


def _provider(name: str, reply: str | None = None, error: Exception | None = None) -> MagicMock:
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = name
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value=reply, side_effect=error)
    return mock


def _retrieval(results: list[SearchResult]) -> MagicMock:
    mock = MagicMock(spec=RetrievalService)
    mock.retrieve = AsyncMock(return_value=results)
    return mock


class TestPrompts:
    def test_user_prompt_numbers_passages(self) -> None:
        prompt = build_user_prompt("Who won?", ["first", "second"])
        assert "[1] first" in prompt
        assert "[2] second" in prompt
        assert prompt.endswith("Question: Who won?")

    def test_fallback_answer_quotes_context(self) -> None:
        text = build_fallback_answer([f"passage {i}" for i in range(8)])
        assert "- passage 0" in text
        assert "- passage 4" in text
        assert "passage 5" not in text

    def test_fallback_without_context(self) -> None:
        assert build_fallback_answer([]) == NO_INFORMATION_ANSWER


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_first_provider_answers(self, mock_llm_provider: MagicMock) -> None:
        service = AnswerService(_retrieval([]), [mock_llm_provider], max_tokens=300, temperature=0.2)

        result = await service.synthesize("Who won?", ["ctx"])

        assert result.provider == "mock-llm"
        assert result.used_fallback is False
        kwargs = mock_llm_provider.complete.await_args.kwargs
        assert kwargs == {"temperature": 0.2, "max_tokens": 300}

    @pytest.mark.asyncio
    async def test_fails_over_to_next_provider(self) -> None:
        first = _provider("bedrock-us-east-1", error=RateLimitError(message="throttled"))
        second = _provider("openrouter-gpt", reply="Answer from OpenRouter")
        service = AnswerService(_retrieval([]), [first, second])

        result = await service.synthesize("q", ["ctx"])

        assert result.answer == "Answer from OpenRouter"
        assert result.provider == "openrouter-gpt"

    @pytest.mark.asyncio
    async def test_all_providers_fail(self) -> None:
        providers = [_provider(f"p{i}", error=LLMError(message="down")) for i in range(2)]
        service = AnswerService(_retrieval([]), providers)

        result = await service.synthesize("q", ["Verstappen won in Japan."])

        assert result.used_fallback is True
        assert result.provider is None
        assert "Verstappen won in Japan." in result.answer
        for provider in providers:
            assert provider.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_no_providers_uses_fallback(self) -> None:
        result = await AnswerService(_retrieval([]), []).synthesize("q", ["ctx text"])
        assert result.used_fallback is True


class TestAnswer:
    @pytest.mark.asyncio
    async def test_no_context_skips_providers(self, mock_llm_provider: MagicMock) -> None:
        service = AnswerService(_retrieval([]), [mock_llm_provider])

        result = await service.answer("Who won the 1950 title?")

        assert result.answer == NO_INFORMATION_ANSWER
        mock_llm_provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_answer_includes_source_summary(
        self, mock_llm_provider: MagicMock, sample_results: list[SearchResult]
    ) -> None:
        retrieval = _retrieval(sample_results)
        service = AnswerService(retrieval, [mock_llm_provider])
        filters = SearchFilters(season="2024")

        result = await service.answer("Tell me about 2024", filters=filters, limit=4)

        retrieval.retrieve.assert_awaited_once_with("Tell me about 2024", filters=filters, limit=4)
        assert result.provider == "mock-llm"
        assert len(result.sources) == 2
        assert result.categories == ["drivers", "teams"]
        assert result.seasons == ["2024"]
