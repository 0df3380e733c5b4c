"""
Interfaces AskService consumes.

Window management, settings storage, screen capture and persistence live
outside this package; anything with the right methods can be plugged in.
All methods except the surface ones are coroutines.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel

from askstream.models import ModelInfo


class ScreenshotResult(BaseModel):
    success: bool
    base64: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    error: Optional[str] = None


class ModelResolver(Protocol):
    async def get_current_model_info(self, kind: str) -> Optional[ModelInfo]: ...

    async def get_settings(self) -> Dict[str, Any]: ...

    async def get_reasoning_effort(self) -> str: ...

    async def get_selected_preset_prompt(self) -> str: ...


class ScreenCapture(Protocol):
    async def capture_screenshot(self, **options: Any) -> ScreenshotResult: ...


class SessionRepository(Protocol):
    async def get_or_create_active(self, session_kind: str) -> str: ...

    async def add_message(
        self,
        *,
        session_id: str,
        role: str,
        content: str,
        model: Optional[str] = None,
    ) -> Any: ...


class AskSurface(Protocol):
    """The ask window as seen from the service."""

    def is_visible(self) -> bool: ...

    def request_visibility(self, visible: bool) -> None: ...

    def publish_state(self, state: Dict[str, Any]) -> None: ...

    def publish_stream_error(self, message: str) -> None: ...


class NoScreenCapture:
    """Capture stand-in for environments without a screen (CLI, tests)."""

    async def capture_screenshot(self, **options: Any) -> ScreenshotResult:
        return ScreenshotResult(success=False, error="Screen capture is not available")


__all__ = [
    "AskSurface",
    "ModelResolver",
    "NoScreenCapture",
    "ScreenCapture",
    "ScreenshotResult",
    "SessionRepository",
]
