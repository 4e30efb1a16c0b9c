"""Answer-synthesis result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AnswerSource(BaseModel):
    """A retrieved document cited by an answer."""

    model_config = ConfigDict(frozen=True)

    text: str
    source: str
    category: str
    season: str
    similarity: float = Field(ge=0.0, le=1.0)


class AnswerResult(BaseModel):
    """A synthesized answer and the context it was grounded on."""

    model_config = ConfigDict(frozen=True)

    answer: str = Field(description="Answer text.")
    provider: str | None = Field(
        default=None,
        description="LLM provider that produced the answer; None for canned/fallback answers.",
    )
    used_fallback: bool = Field(default=False, description="True when no provider succeeded.")
    sources: list[AnswerSource] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    seasons: list[str] = Field(default_factory=list)
