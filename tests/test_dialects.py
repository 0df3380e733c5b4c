from askstream.models import GenerationOptions, ImagePart, Message, TextPart
from askstream.provider.dialects import (
    ChatCompletionsDialect,
    ResponsesDialect,
    convert_messages_to_responses_input,
    resolve_dialect,
    routing_for_provider,
)
from askstream.settings import settings


def _messages():
    return [
        Message(role="system", content="be brief"),
        Message(
            role="user",
            content=[
                TextPart(text="User Request: what is this?"),
                ImagePart.from_base64("AAAA"),
            ],
        ),
    ]


def test_routing_selects_dialect():
    assert routing_for_provider("openai") == "direct"
    assert routing_for_provider(settings.relay_provider_id) == "relay"
    assert isinstance(resolve_dialect("direct"), ResponsesDialect)
    relay = resolve_dialect("relay")
    assert isinstance(relay, ChatCompletionsDialect)
    assert relay.force_legacy_max_tokens is True


def test_responses_request_for_reasoning_model():
    options = GenerationOptions(
        model="gpt-5", temperature=0.7, max_output_tokens=8192, reasoning_effort="high"
    )
    request = ResponsesDialect().build_request(_messages(), options, api_key="sk-test", stream=True)

    assert request.url == f"{settings.openai_base_url.rstrip('/')}/responses"
    assert request.label == "OpenAI"
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert request.headers["Accept"] == "text/event-stream"

    body = request.body
    assert "temperature" not in body
    assert body["max_output_tokens"] == 8192
    assert body["reasoning"] == {"effort": "high"}
    assert body["stream"] is True
    assert body["input"][0] == {
        "role": "developer",
        "content": [{"type": "input_text", "text": "be brief"}],
    }
    assert body["input"][1]["content"] == [
        {"type": "input_text", "text": "User Request: what is this?"},
        {"type": "input_image", "image_url": "data:image/jpeg;base64,AAAA"},
    ]


def test_responses_request_for_classic_model():
    options = GenerationOptions(model="gpt-4.1", temperature=0.7, max_output_tokens=4096)
    body = ResponsesDialect().build_body(_messages(), options, stream=False)

    assert body["temperature"] == 0.7
    assert "reasoning" not in body
    assert "stream" not in body
    assert body["input"][0]["role"] == "system"


def test_relay_request_forces_legacy_max_tokens(monkeypatch):
    monkeypatch.setattr(settings, "relay_api_key", "relay-account")
    options = GenerationOptions(
        model="gpt-5",
        temperature=0.7,
        max_output_tokens=8192,
        reasoning_effort="high",
        routing="relay",
    )
    request = resolve_dialect("relay").build_request(
        _messages(), options, api_key="virtual-123", stream=True
    )

    assert request.url == f"{settings.relay_base_url.rstrip('/')}/chat/completions"
    assert request.headers["x-portkey-api-key"] == "relay-account"
    assert request.headers["x-portkey-virtual-key"] == "virtual-123"
    assert "Authorization" not in request.headers

    body = request.body
    assert body["max_tokens"] == 8192
    assert "max_completion_tokens" not in body
    assert "reasoning" not in body
    assert "temperature" not in body
    assert body["messages"][0]["role"] == "developer"
    assert body["messages"][1]["content"][1]["image_url"]["url"].startswith("data:image/jpeg")


def test_responses_input_accepts_loose_dicts():
    converted = convert_messages_to_responses_input(
        "gpt-4o",
        [
            {"role": "tool", "content": "hi"},
            {"role": "user", "content": [{"type": "image", "url": {"url": "http://x/img.png"}}]},
            {"role": "user", "content": [{"type": "audio", "data": "..."}]},
            "not a message",
        ],
    )
    assert converted == [
        {"role": "user", "content": [{"type": "input_text", "text": "hi"}]},
        {"role": "user", "content": [{"type": "input_image", "image_url": "http://x/img.png"}]},
        {"role": "user", "content": [{"type": "input_text", "text": ""}]},
    ]
