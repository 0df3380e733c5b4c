"""
Content-part normalization and text extraction shared by both dialects.

All functions accept loosely shaped JSON (dicts, lists, strings) and never
raise on unexpected shapes; unknown parts are dropped and unknown events
yield an empty string.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel

from askstream.models import ASSISTANT_ROLE, DEVELOPER_ROLE, SYSTEM_ROLE, USER_ROLE

_RESPONSES_ROLES = (ASSISTANT_ROLE, SYSTEM_ROLE, DEVELOPER_ROLE)
_TEXT_PART_TYPES = ("text", "input_text")
_IMAGE_PART_TYPES = ("image", "image_url", "input_image")


def message_to_dict(message: Any) -> Optional[Dict[str, Any]]:
    if isinstance(message, BaseModel):
        return message.model_dump()
    if isinstance(message, dict):
        return message
    return None


def normalize_responses_role(role: Any) -> str:
    if role in _RESPONSES_ROLES:
        return role
    return USER_ROLE


def _resolve_image_url(part: Dict[str, Any]) -> Optional[str]:
    for key in ("image_url", "url"):
        value = part.get(key)
        if isinstance(value, dict):
            value = value.get("url")
        if isinstance(value, str) and value:
            return value
    return None


def normalize_responses_content_part(part: Any) -> Optional[Dict[str, Any]]:
    if isinstance(part, str):
        return {"type": "input_text", "text": part}
    if not isinstance(part, dict):
        return None

    part_type = part.get("type")
    if part_type in _TEXT_PART_TYPES and isinstance(part.get("text"), str):
        return {"type": "input_text", "text": part["text"]}
    if part_type in _IMAGE_PART_TYPES:
        image_url = _resolve_image_url(part)
        if image_url:
            return {"type": "input_image", "image_url": image_url}
    return None


def normalize_responses_content(content: Any) -> List[Dict[str, Any]]:
    raw_parts = content if isinstance(content, list) else [content]
    parts = [
        normalized
        for normalized in (normalize_responses_content_part(p) for p in raw_parts)
        if normalized is not None
    ]
    if not parts:
        parts.append({"type": "input_text", "text": ""})
    return parts


def _part_text(part: Any) -> str:
    """Text carried by one streamed or completed content part."""
    if isinstance(part, str):
        return part
    if not isinstance(part, dict):
        return ""
    text = part.get("text")
    if isinstance(text, str):
        return text
    if isinstance(part.get("delta"), str):
        return part["delta"]
    if isinstance(text, dict) and isinstance(text.get("value"), str):
        return text["value"]
    return ""


def _output_text_part(part: Any) -> str:
    if isinstance(part, str):
        return part
    if isinstance(part, dict) and isinstance(part.get("text"), str):
        return part["text"]
    return ""


def _output_item_text(output: Iterable[Any]) -> str:
    pieces: List[str] = []
    for item in output:
        content = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content, list):
            continue
        for part in content:
            if not isinstance(part, dict):
                continue
            text = part.get("text")
            if isinstance(text, str):
                pieces.append(text)
            elif isinstance(text, dict) and isinstance(text.get("value"), str):
                pieces.append(text["value"])
    return "".join(pieces)


def extract_text_content(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if not isinstance(content, list):
        return ""
    return "".join(_part_text(part) for part in content).strip()


def extract_chat_completion_text(payload: Any) -> str:
    """`choices[0].message.content` of a chat-completions response."""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    return extract_text_content(message.get("content"))


def extract_responses_output_text(payload: Any) -> str:
    """
    Completed assistant text of a responses-style object, without the
    chat-completions fallback.
    """
    if not isinstance(payload, dict):
        return ""

    output_text = payload.get("output_text")
    if isinstance(output_text, str):
        return output_text.strip()
    if isinstance(output_text, list):
        return "".join(_output_text_part(part) for part in output_text).strip()

    output = payload.get("output")
    if not isinstance(output, list):
        return ""
    return _output_item_text(output).strip()


def extract_response_text(payload: Any) -> str:
    """Completed text of any supported response shape."""
    text = extract_responses_output_text(payload)
    if text:
        return text
    return extract_chat_completion_text(payload)


def extract_stream_token(event: Any) -> str:
    if not isinstance(event, dict):
        return ""

    event_type = event.get("type")
    delta = event.get("delta")

    # Covers the tagged response.output_text.delta event as well.
    if isinstance(delta, str):
        return delta

    if event_type == "response.content_part.added":
        part = event.get("part")
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            return part["text"]

    if event_type == "response.content_part.delta":
        if isinstance(delta, dict) and isinstance(delta.get("text"), str):
            return delta["text"]

    choices = event.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    choice_delta = choices[0].get("delta")
    if not isinstance(choice_delta, dict):
        return ""
    content = choice_delta.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(_part_text(part) for part in content)
    return ""


def extract_completed_stream_text(event: Any) -> str:
    """Snapshot text of the `response` object carried by terminal events."""
    if not isinstance(event, dict):
        return ""
    return extract_responses_output_text(event.get("response"))


def extract_stream_error(event: Any) -> str:
    if not isinstance(event, dict):
        return ""

    event_type = event.get("type")
    if event_type == "error":
        error = event.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        return message or "Unknown streaming error"

    if event_type == "response.failed":
        response = event.get("response")
        error = response.get("error") if isinstance(response, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        return message or "Response failed"

    return ""


__all__ = [
    "extract_chat_completion_text",
    "extract_completed_stream_text",
    "extract_response_text",
    "extract_responses_output_text",
    "extract_stream_error",
    "extract_stream_token",
    "extract_text_content",
    "message_to_dict",
    "normalize_responses_content",
    "normalize_responses_content_part",
    "normalize_responses_role",
]
