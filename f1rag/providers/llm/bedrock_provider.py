"""AWS Bedrock chat provider adapter.

Bedrock's ``invoke_model`` takes a model-family specific JSON body, so the
wire shape is chosen once, at construction, from the model identifier
prefix:

==================  ===============================================  ======================
prefix              request                                          text found at
==================  ===============================================  ======================
``anthropic.``      messages + ``system``, ``anthropic_version``      ``content[*].text``
``meta.``           Llama 3 chat template in ``prompt``               ``generation``
``mistral.``        ``<s>[INST] ... [/INST]`` in ``prompt``           ``outputs[0].text``
``amazon.titan-t``  ``inputText`` + ``textGenerationConfig``          ``results[0].outputText``
==================  ===============================================  ======================

An unknown prefix is a configuration error raised at startup, not at
request time.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from f1rag.config.settings import Settings
from f1rag.interfaces.llm_provider import ILLMProvider
from f1rag.providers.embedding.bedrock_embedding_provider import build_bedrock_client
from f1rag.utils.errors import ConfigurationError, LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_THROTTLING_CODES = {"ThrottlingException", "TooManyRequestsException", "ServiceQuotaExceededException"}

BedrockBody = dict[str, Any]


def _anthropic_body(system: str, user: str, temperature: float, max_tokens: int) -> BedrockBody:
    return {
        "anthropic_version": "bedrock-2023-05-31",
        "max_tokens": max_tokens,
        "temperature": temperature,
        "system": system,
        "messages": [{"role": "user", "content": [{"type": "text", "text": user}]}],
    }


def _anthropic_text(payload: dict[str, Any]) -> str:
    blocks = payload.get("content") or []
    return "".join(b.get("text", "") for b in blocks if b.get("type") == "text")


def _llama_body(system: str, user: str, temperature: float, max_tokens: int) -> BedrockBody:
    prompt = (
        "<|begin_of_text|><|start_header_id|>system<|end_header_id|>\n\n"
        f"{system}<|eot_id|><|start_header_id|>user<|end_header_id|>\n\n"
        f"{user}<|eot_id|><|start_header_id|>assistant<|end_header_id|>\n\n"
    )
    return {"prompt": prompt, "max_gen_len": max_tokens, "temperature": temperature}


def _llama_text(payload: dict[str, Any]) -> str:
    return payload.get("generation") or ""


def _mistral_body(system: str, user: str, temperature: float, max_tokens: int) -> BedrockBody:
    return {
        "prompt": f"<s>[INST] {system}\n\n{user} [/INST]",
        "max_tokens": max_tokens,
        "temperature": temperature,
    }


def _mistral_text(payload: dict[str, Any]) -> str:
    outputs = payload.get("outputs") or []
    return outputs[0].get("text", "") if outputs else ""


def _titan_body(system: str, user: str, temperature: float, max_tokens: int) -> BedrockBody:
    return {
        "inputText": f"{system}\n\nUser: {user}\nBot:",
        "textGenerationConfig": {"maxTokenCount": max_tokens, "temperature": temperature},
    }


def _titan_text(payload: dict[str, Any]) -> str:
    results = payload.get("results") or []
    return results[0].get("outputText", "") if results else ""


_WIRE_SHAPES: tuple[tuple[str, Callable[..., BedrockBody], Callable[[dict[str, Any]], str]], ...] = (
    ("anthropic.", _anthropic_body, _anthropic_text),
    ("meta.", _llama_body, _llama_text),
    ("mistral.", _mistral_body, _mistral_text),
    ("amazon.titan-text", _titan_body, _titan_text),
)


class BedrockLLMProvider(ILLMProvider):
    """Chat completions from one Bedrock model in one region."""

    def __init__(
        self,
        settings: Settings,
        region: str,
        model_id: str | None = None,
        client: Any | None = None,
    ) -> None:
        self._model_id = model_id or settings.bedrock_chat_model
        self._region = region
        for prefix, build_body, extract_text in _WIRE_SHAPES:
            # Cross-region inference profiles prefix the model id with a geography ("us.").
            if self._model_id.split(".", 1)[-1].startswith(prefix) or self._model_id.startswith(prefix):
                self._build_body = build_body
                self._extract_text = extract_text
                break
        else:
            raise ConfigurationError(
                message=f"Unsupported Bedrock chat model {self._model_id!r}",
                provider_name=f"bedrock-{region}",
            )
        self._client = client if client is not None else build_bedrock_client(settings, region)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        body = self._build_body(system_prompt, user_prompt, temperature, max_tokens)
        start = time.monotonic()
        try:
            response = await asyncio.to_thread(
                self._client.invoke_model,
                modelId=self._model_id,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
            payload = json.loads(response["body"].read())
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in _THROTTLING_CODES:
                raise RateLimitError(
                    message=f"Bedrock throttled chat request: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise LLMError(
                message=f"Bedrock chat request failed ({code}): {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except (BotoCoreError, ValueError) as exc:
            raise LLMError(
                message=f"Bedrock chat request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text = self._extract_text(payload).strip()
        if not text:
            raise LLMError(
                message="Bedrock returned an empty completion",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "bedrock_chat_complete",
            model=self._model_id,
            region=self._region,
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        return text

    def get_provider_name(self) -> str:
        return f"bedrock-{self._region}-{self._model_id}"

    def is_available(self) -> bool:
        return self._client is not None
