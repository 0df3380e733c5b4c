from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SessionState(BaseModel):
    """
    Ask session state owned by AskService.

    Observers only ever see `snapshot()` copies, keyed in camelCase the way
    the ask surface consumes them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_visible: bool = False
    is_loading: bool = False
    is_streaming: bool = False
    current_question: str = ""
    current_response: str = ""
    show_text_input: bool = True
    voice_draft: str = ""
    voice_speaker: str = ""
    voice_draft_timestamp: float = 0.0

    def snapshot(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class AskResult(BaseModel):
    success: bool
    error: Optional[str] = None


__all__ = ["AskResult", "SessionState"]
