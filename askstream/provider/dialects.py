"""
Wire dialects.

A dialect turns provider-agnostic messages plus GenerationOptions into an
UpstreamRequest and reads text back out of responses and stream events.
The routing mode picks the dialect once per request:

- direct access always speaks the responses dialect;
- relay access always speaks chat-completions with the legacy
  `max_tokens` field forced.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Literal, Optional, Sequence

from askstream.models import (
    DEVELOPER_ROLE,
    SYSTEM_ROLE,
    GenerationOptions,
    RoutingMode,
    UpstreamRequest,
)
from askstream.provider.content import (
    extract_chat_completion_text,
    extract_completed_stream_text,
    extract_response_text,
    extract_stream_error,
    extract_stream_token,
    message_to_dict,
    normalize_responses_content,
    normalize_responses_role,
)
from askstream.provider.header_builder import build_upstream_headers
from askstream.provider.reasoning import (
    build_reasoning_payload,
    build_responses_token_payload,
    build_temperature_payload,
    build_token_payload,
    is_reasoning_model,
)
from askstream.settings import settings

DialectId = Literal["responses", "chat_completions"]

MessageLike = Any  # Message model or a loosely shaped dict


def normalize_messages_for_model(
    model: str, messages: Sequence[MessageLike]
) -> List[Dict[str, Any]]:
    """Plain message dicts, with `system` rewritten to `developer` for reasoning models."""
    normalized: List[Dict[str, Any]] = []
    rewrite_system = is_reasoning_model(model)
    for message in messages:
        data = message_to_dict(message)
        if data is None:
            continue
        if rewrite_system and data.get("role") == SYSTEM_ROLE:
            data = {**data, "role": DEVELOPER_ROLE}
        normalized.append(data)
    return normalized


def convert_messages_to_responses_input(
    model: str, messages: Sequence[MessageLike]
) -> List[Dict[str, Any]]:
    return [
        {
            "role": normalize_responses_role(message.get("role")),
            "content": normalize_responses_content(message.get("content")),
        }
        for message in normalize_messages_for_model(model, messages)
    ]


class Dialect:
    """Shared stream/response readers; subclasses own request shaping."""

    id: ClassVar[DialectId]
    path: ClassVar[str]

    def build_request(
        self,
        messages: Sequence[MessageLike],
        options: GenerationOptions,
        *,
        api_key: str,
        stream: bool,
    ) -> UpstreamRequest:
        raise NotImplementedError

    def extract_response(self, payload: Any) -> str:
        raise NotImplementedError

    def extract_token(self, event: Any) -> str:
        return extract_stream_token(event)

    def extract_completed(self, event: Any) -> str:
        return extract_completed_stream_text(event)

    def extract_error(self, event: Any) -> str:
        return extract_stream_error(event)


class ResponsesDialect(Dialect):
    id = "responses"
    path = "/responses"

    def __init__(self, base_url: Optional[str] = None, label: str = "OpenAI") -> None:
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.label = label

    def build_body(
        self, messages: Sequence[MessageLike], options: GenerationOptions, *, stream: bool
    ) -> Dict[str, Any]:
        model = options.model
        body: Dict[str, Any] = {
            "model": model,
            "input": convert_messages_to_responses_input(model, messages),
            **build_temperature_payload(model, options.temperature),
            **build_responses_token_payload(options.max_output_tokens),
            **build_reasoning_payload(model, options.reasoning_effort),
        }
        if stream:
            body["stream"] = True
        return body

    def build_request(self, messages, options, *, api_key, stream):
        return UpstreamRequest(
            label=self.label,
            url=f"{self.base_url}{self.path}",
            headers=build_upstream_headers(api_key, routing="direct", is_stream=stream),
            body=self.build_body(messages, options, stream=stream),
        )

    def extract_response(self, payload: Any) -> str:
        return extract_response_text(payload)


class ChatCompletionsDialect(Dialect):
    id = "chat_completions"
    path = "/chat/completions"

    def __init__(
        self,
        base_url: Optional[str] = None,
        label: Optional[str] = None,
        *,
        force_legacy_max_tokens: bool = True,
        routing: RoutingMode = "relay",
    ) -> None:
        self.base_url = (base_url or settings.relay_base_url).rstrip("/")
        self.label = label or settings.relay_label
        self.force_legacy_max_tokens = force_legacy_max_tokens
        self.routing = routing

    def build_body(
        self, messages: Sequence[MessageLike], options: GenerationOptions, *, stream: bool
    ) -> Dict[str, Any]:
        model = options.model
        body: Dict[str, Any] = {
            "model": model,
            "messages": normalize_messages_for_model(model, messages),
            **build_temperature_payload(model, options.temperature),
            **build_token_payload(
                model,
                options.max_output_tokens,
                force_legacy_max_tokens=self.force_legacy_max_tokens,
            ),
        }
        if stream:
            body["stream"] = True
        return body

    def build_request(self, messages, options, *, api_key, stream):
        return UpstreamRequest(
            label=self.label,
            url=f"{self.base_url}{self.path}",
            headers=build_upstream_headers(api_key, routing=self.routing, is_stream=stream),
            body=self.build_body(messages, options, stream=stream),
        )

    def extract_response(self, payload: Any) -> str:
        return extract_chat_completion_text(payload)


def resolve_dialect(routing: RoutingMode) -> Dialect:
    if routing == "relay":
        return ChatCompletionsDialect(force_legacy_max_tokens=True)
    return ResponsesDialect()


def routing_for_provider(provider_id: str) -> RoutingMode:
    return "relay" if provider_id == settings.relay_provider_id else "direct"


__all__ = [
    "ChatCompletionsDialect",
    "Dialect",
    "DialectId",
    "ResponsesDialect",
    "convert_messages_to_responses_input",
    "normalize_messages_for_model",
    "resolve_dialect",
    "routing_for_provider",
]
