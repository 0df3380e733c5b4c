from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

StreamEventKind = Literal["token", "completed", "error"]


@dataclass
class StreamEvent:
    """A decoded unit from the event stream; never persisted."""

    kind: StreamEventKind
    text: str
    raw: Optional[Any] = None


__all__ = ["StreamEvent", "StreamEventKind"]
