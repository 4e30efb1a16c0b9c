"""Chat-completion provider adapters used for answer synthesis."""

from __future__ import annotations

from f1rag.providers.llm.bedrock_provider import BedrockLLMProvider
from f1rag.providers.llm.openai_provider import OpenAICompatibleLLMProvider

__all__ = ["BedrockLLMProvider", "OpenAICompatibleLLMProvider"]
