"""
Model-family rules for request shaping.

Reasoning-family models (identifiers starting with "gpt-5", any case)
reject sampling controls, take `developer` instead of `system` messages and
accept a reasoning-effort fragment. Everything else gets the classic
temperature/max_tokens treatment.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional, get_args

from askstream.models import ReasoningEffort

REASONING_MODEL_PREFIX = "gpt-5"

REASONING_EFFORT_VALUES = get_args(ReasoningEffort)
_XHIGH_ALIASES = ("x-high", "x_high", "x high")
_HIGH_EFFORTS = ("high", "xhigh")

DEFAULT_MIN_OUTPUT_TOKENS = 4096
HIGH_REASONING_MIN_OUTPUT_TOKENS = 8192


def is_reasoning_model(model: Any) -> bool:
    return isinstance(model, str) and model.lower().startswith(REASONING_MODEL_PREFIX)


def normalize_reasoning_effort(value: Any) -> Optional[str]:
    """
    Map user/settings input onto the accepted effort values.

    Returns None when the value is not recognised; callers emit no
    reasoning fragment in that case.
    """
    candidate = value.strip().lower() if isinstance(value, str) else ""
    if candidate == "minimal":
        return "none"
    if candidate in _XHIGH_ALIASES:
        return "xhigh"
    if candidate in REASONING_EFFORT_VALUES:
        return candidate
    return None


def build_reasoning_payload(model: str, reasoning_effort: Any) -> Dict[str, Any]:
    if not is_reasoning_model(model):
        return {}
    effort = normalize_reasoning_effort(reasoning_effort)
    return {"reasoning": {"effort": effort}} if effort else {}


def build_temperature_payload(model: str, temperature: Any) -> Dict[str, Any]:
    if not _is_number(temperature):
        return {}
    # Reasoning models reject custom sampling controls.
    if is_reasoning_model(model):
        return {}
    return {"temperature": temperature}


def build_token_payload(
    model: str, max_tokens: Any, *, force_legacy_max_tokens: bool = False
) -> Dict[str, Any]:
    """Token ceiling fragment for the chat-completions dialect."""
    if not max_tokens or not _is_number(max_tokens):
        return {}
    if force_legacy_max_tokens:
        return {"max_tokens": max_tokens}
    if is_reasoning_model(model):
        return {"max_completion_tokens": max_tokens}
    return {"max_tokens": max_tokens}


def build_responses_token_payload(max_tokens: Any) -> Dict[str, Any]:
    """Token ceiling fragment for the responses dialect."""
    if not max_tokens or not _is_number(max_tokens):
        return {}
    return {"max_output_tokens": max_tokens}


def compute_effective_max_tokens(
    model: str, reasoning_effort: Optional[str], configured_max_tokens: Any
) -> int:
    """
    Output-token ceiling for an ask request.

    Configured values below the family floor are raised to it; reasoning
    models at high/xhigh effort get a larger floor because their hidden
    reasoning tokens count against the same budget.
    """
    floor = (
        HIGH_REASONING_MIN_OUTPUT_TOKENS
        if is_reasoning_model(model) and reasoning_effort in _HIGH_EFFORTS
        else DEFAULT_MIN_OUTPUT_TOKENS
    )
    try:
        configured = float(configured_max_tokens)
    except (TypeError, ValueError):
        return floor
    if math.isfinite(configured) and configured > 0:
        return max(int(configured), floor)
    return floor


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


__all__ = [
    "DEFAULT_MIN_OUTPUT_TOKENS",
    "HIGH_REASONING_MIN_OUTPUT_TOKENS",
    "REASONING_EFFORT_VALUES",
    "REASONING_MODEL_PREFIX",
    "build_reasoning_payload",
    "build_responses_token_payload",
    "build_temperature_payload",
    "build_token_payload",
    "compute_effective_max_tokens",
    "is_reasoning_model",
    "normalize_reasoning_effort",
]
