"""Answer synthesis over retrieved F1 documents.

:meth:`AnswerService.answer` retrieves context for a question and asks the
configured chat providers (Bedrock regions first, then OpenRouter models)
to answer from it.  Providers are tried in order using the same
:func:`~f1rag.utils.failover.try_next` policy as embedding endpoints.

Two answers never touch a provider:

* no documents were retrieved: a canned "no information" reply;
* every provider failed: a templated reply quoting the retrieved context.

Neither path raises, so the HTTP layer and the CLI always have something
to show.
"""

from __future__ import annotations

import structlog

from f1rag.interfaces.llm_provider import ILLMProvider
from f1rag.models.answer import AnswerResult, AnswerSource
from f1rag.models.document import SearchFilters, SearchResult
from f1rag.services.retrieval_service import RetrievalService
from f1rag.utils.errors import F1RagError
from f1rag.utils.failover import try_next

logger = structlog.get_logger(logger_name=__name__)

NO_INFORMATION_ANSWER = (
    "I don't have specific information about that in the Formula 1 knowledge base. "
    "Try asking about drivers, teams, race results, qualifying or the calendar."
)

_SYSTEM_PROMPT = (
    "You are a Formula 1 analyst. Answer the question using only the context "
    "provided. Quote concrete details (drivers, teams, positions, points, "
    "seasons) from the context. If the context does not contain the answer, "
    "say so plainly instead of guessing."
)

# Context passages quoted in the templated fallback answer.
_FALLBACK_PASSAGES = 5


def build_user_prompt(question: str, context: list[str]) -> str:
    passages = "\n\n".join(f"[{i}] {text}" for i, text in enumerate(context, start=1))
    return f"Context:\n{passages}\n\nQuestion: {question}"


def build_fallback_answer(context: list[str]) -> str:
    if not context:
        return NO_INFORMATION_ANSWER
    lines = "\n".join(f"- {text}" for text in context[:_FALLBACK_PASSAGES])
    return (
        "The answer service is unavailable right now, but the knowledge base "
        f"holds the following relevant records:\n{lines}"
    )


class AnswerService:
    """Retrieve, then synthesize an answer with provider failover.

    Parameters
    ----------
    retrieval:
        Retrieval service supplying context documents.
    providers:
        Chat providers in preference order.  May be empty, in which case
        every answer is the templated fallback.
    max_tokens:
        Default completion budget.
    temperature:
        Default sampling temperature.
    """

    def __init__(
        self,
        retrieval: RetrievalService,
        providers: list[ILLMProvider],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> None:
        self._retrieval = retrieval
        self._providers = list(providers)
        self._max_tokens = max_tokens
        self._temperature = temperature

    def get_provider_names(self) -> list[str]:
        return [p.get_provider_name() for p in self._providers]

    async def synthesize(
        self,
        question: str,
        context: list[str],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> AnswerResult:
        """Ask each provider in turn; fall back to a templated answer."""
        user_prompt = build_user_prompt(question, context)
        count = len(self._providers)
        current = 0
        attempts = 0

        while count:
            provider = self._providers[current]
            attempts += 1
            try:
                text = await provider.complete(
                    _SYSTEM_PROMPT,
                    user_prompt,
                    temperature=self._temperature if temperature is None else temperature,
                    max_tokens=max_tokens or self._max_tokens,
                )
                return AnswerResult(answer=text, provider=provider.get_provider_name())
            except F1RagError as exc:
                logger.warning(
                    "answer_provider_failed",
                    provider=provider.get_provider_name(),
                    attempt=attempts,
                    error=str(exc),
                )
                next_index = try_next(count, current, attempts)
                if next_index is None:
                    break
                current = next_index

        logger.error("answer_all_providers_failed", providers=count)
        return AnswerResult(answer=build_fallback_answer(context), used_fallback=True)

    async def answer(
        self,
        question: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
    ) -> AnswerResult:
        """Answer *question* from the knowledge base."""
        results = await self._retrieval.retrieve(question, filters=filters, limit=limit)
        if not results:
            logger.info("answer_no_context", question_length=len(question))
            return AnswerResult(answer=NO_INFORMATION_ANSWER)

        synthesized = await self.synthesize(question, [r.document.text for r in results])
        return synthesized.model_copy(update=_source_summary(results))


def _source_summary(results: list[SearchResult]) -> dict:
    sources = [
        AnswerSource(
            text=r.document.text,
            source=r.document.source,
            category=r.document.category.value,
            season=r.document.season,
            similarity=r.similarity,
        )
        for r in results
    ]
    return {
        "sources": sources,
        "categories": sorted({s.category for s in sources}),
        "seasons": sorted({s.season for s in sources}),
    }
