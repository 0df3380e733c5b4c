"""
Upstream error helpers.

- Pull the provider's own message out of an error body.
- Decide whether a failure looks like the model rejecting image input, in
  which case the ask is retried once without the screenshot.
"""

from __future__ import annotations

import json
from typing import Any

_MULTIMODAL_HINTS = (
    "vision",
    "image",
    "multimodal",
    "unsupported",
    "image_url",
    # Bad Request is how most providers reject unsupported content parts.
    "400",
    "invalid",
    "not supported",
)


def _extract_message_from_json(obj: Any) -> str | None:
    if isinstance(obj, dict):
        # {"error": {"message": "..."}}
        if isinstance(obj.get("error"), dict):
            msg = obj["error"].get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
        msg = obj.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
        detail = obj.get("detail")
        if isinstance(detail, str) and detail.strip():
            return detail.strip()
    return None


def extract_error_message(error_text: str | None) -> str:
    if not error_text:
        return ""
    text = str(error_text)
    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    return _extract_message_from_json(parsed) or text


def is_multimodal_error(error: BaseException | str | None) -> bool:
    message = str(error or "").lower()
    if not message:
        return False
    return any(hint in message for hint in _MULTIMODAL_HINTS)


__all__ = ["extract_error_message", "is_multimodal_error"]
