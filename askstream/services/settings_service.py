"""
In-memory settings, presets and model selection.

Mirrors the desktop settings layer closely enough to drive AskService:
settings are stored per user key on top of defaults, and the reasoning
effort is normalized here with a "medium" default. The payload builders
normalize again without a default.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from askstream.logging_config import logger
from askstream.models import ModelInfo
from askstream.provider.reasoning import normalize_reasoning_effort

DEFAULT_REASONING_EFFORT = "medium"


def get_default_settings() -> Dict[str, Any]:
    return {
        "selectedPresetId": None,
        "language": "en",
        "maxTokens": 4096,
        "reasoningEffort": DEFAULT_REASONING_EFFORT,
    }


def normalize_settings_reasoning_effort(value: Any) -> str:
    return normalize_reasoning_effort(value) or DEFAULT_REASONING_EFFORT


class SettingsService:
    def __init__(
        self,
        *,
        model_info: Optional[ModelInfo] = None,
        stt_model_info: Optional[ModelInfo] = None,
        presets: Optional[List[Dict[str, Any]]] = None,
        user_key: str = "default",
    ) -> None:
        self._models: Dict[str, Optional[ModelInfo]] = {"llm": model_info, "stt": stt_model_info}
        self._presets: List[Dict[str, Any]] = list(presets or [])
        self._store: Dict[str, Dict[str, Any]] = {}
        self._user_key = user_key

    async def get_current_model_info(self, kind: str) -> Optional[ModelInfo]:
        return self._models.get(kind)

    def set_model_info(self, kind: str, model_info: Optional[ModelInfo]) -> None:
        self._models[kind] = model_info

    async def get_settings(self) -> Dict[str, Any]:
        return {**get_default_settings(), **self._store.get(self._user_key, {})}

    async def save_settings(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        saved = {**self._store.get(self._user_key, {}), **updates}
        self._store[self._user_key] = saved
        return {"success": True}

    async def get_reasoning_effort(self) -> str:
        current = await self.get_settings()
        return normalize_settings_reasoning_effort(current.get("reasoningEffort"))

    async def set_reasoning_effort(self, value: Any) -> Dict[str, Any]:
        return await self.save_settings(
            {"reasoningEffort": normalize_settings_reasoning_effort(value)}
        )

    async def get_presets(self) -> List[Dict[str, Any]]:
        return list(self._presets)

    async def set_selected_preset_id(self, preset_id: Optional[str]) -> Dict[str, Any]:
        return await self.save_settings({"selectedPresetId": preset_id or None})

    async def get_selected_preset_prompt(self) -> str:
        try:
            current = await self.get_settings()
            selected_id = current.get("selectedPresetId")
            if not selected_id:
                return ""
            for preset in await self.get_presets():
                if preset.get("id") == selected_id:
                    return preset.get("prompt") or ""
            return ""
        except Exception:
            logger.exception("Failed to resolve selected preset prompt")
            return ""


__all__ = [
    "DEFAULT_REASONING_EFFORT",
    "SettingsService",
    "get_default_settings",
    "normalize_settings_reasoning_effort",
]
