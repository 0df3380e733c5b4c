"""
Provider client facade.

`LLMClient.chat` performs a blocking completion and `stream_chat` opens a
token stream; both build their request through the dialect chosen by the
routing mode.
"""

from __future__ import annotations

from typing import Optional, Sequence

import httpx
from pydantic import BaseModel

from askstream.logging_config import logger
from askstream.models import GenerationOptions, ModelInfo, ProviderResponse
from askstream.provider.dialects import Dialect, MessageLike, resolve_dialect, routing_for_provider
from askstream.settings import settings
from askstream.upstream import UpstreamStream, open_stream, post_json

API_KEY_PREFIX = "sk-"


class LLMClient:
    def __init__(
        self,
        *,
        api_key: str,
        options: GenerationOptions,
        http_client: httpx.AsyncClient,
        dialect: Optional[Dialect] = None,
    ) -> None:
        self.api_key = api_key
        self.options = options
        self.http_client = http_client
        self.dialect = dialect or resolve_dialect(options.routing)

    @property
    def model(self) -> str:
        return self.options.model

    async def chat(self, messages: Sequence[MessageLike]) -> ProviderResponse:
        request = self.dialect.build_request(
            messages, self.options, api_key=self.api_key, stream=False
        )
        result = await post_json(self.http_client, request)
        return ProviderResponse(text=self.dialect.extract_response(result), raw=result)

    async def stream_chat(self, messages: Sequence[MessageLike]) -> UpstreamStream:
        request = self.dialect.build_request(
            messages, self.options, api_key=self.api_key, stream=True
        )
        return await open_stream(self.http_client, request)


def create_llm_client(
    model_info: ModelInfo,
    *,
    http_client: httpx.AsyncClient,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    reasoning_effort: Optional[str] = None,
) -> LLMClient:
    routing = routing_for_provider(model_info.provider)
    options = GenerationOptions(
        model=model_info.model,
        temperature=temperature,
        max_output_tokens=max_tokens,
        reasoning_effort=reasoning_effort,
        routing=routing,
    )
    return LLMClient(api_key=model_info.api_key or "", options=options, http_client=http_client)


class KeyValidationResult(BaseModel):
    success: bool
    error: Optional[str] = None


def validate_api_key_format(key: object) -> bool:
    return isinstance(key, str) and key.startswith(API_KEY_PREFIX)


async def validate_api_key(
    key: object, *, http_client: Optional[httpx.AsyncClient] = None
) -> KeyValidationResult:
    """
    Check a direct-provider key: a local format check first, then a call
    to the models endpoint. Provider error messages are passed through.
    """
    if not validate_api_key_format(key):
        return KeyValidationResult(success=False, error="Invalid OpenAI API key format.")

    url = f"{settings.openai_base_url.rstrip('/')}/models"
    client = http_client or httpx.AsyncClient(timeout=settings.upstream_timeout)
    try:
        response = await client.get(url, headers={"Authorization": f"Bearer {key}"})
    except httpx.HTTPError as exc:
        logger.error("Network error during API key validation: %s", exc)
        return KeyValidationResult(
            success=False, error="A network error occurred during validation."
        )
    finally:
        if http_client is None:
            await client.aclose()

    if response.is_success:
        return KeyValidationResult(success=True)

    try:
        error_data = response.json()
    except ValueError:
        error_data = {}
    error = error_data.get("error") if isinstance(error_data, dict) else None
    message = error.get("message") if isinstance(error, dict) else None
    return KeyValidationResult(
        success=False,
        error=message or f"Validation failed with status: {response.status_code}",
    )


__all__ = [
    "API_KEY_PREFIX",
    "KeyValidationResult",
    "LLMClient",
    "create_llm_client",
    "validate_api_key",
    "validate_api_key_format",
]
