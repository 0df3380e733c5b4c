"""In-memory ask session and message store."""

from __future__ import annotations

import time
import uuid
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class StoredMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    role: str
    content: str
    model: Optional[str] = None
    created_at: float = Field(default_factory=time.time)


class InMemorySessionRepository:
    def __init__(self) -> None:
        self._active: Dict[str, str] = {}
        self.messages: Dict[str, List[StoredMessage]] = {}

    async def get_or_create_active(self, session_kind: str) -> str:
        session_id = self._active.get(session_kind)
        if session_id is None:
            session_id = str(uuid.uuid4())
            self._active[session_kind] = session_id
            self.messages[session_id] = []
        return session_id

    async def end_active(self, session_kind: str) -> Optional[str]:
        return self._active.pop(session_kind, None)

    async def add_message(
        self,
        *,
        session_id: str,
        role: str,
        content: str,
        model: Optional[str] = None,
    ) -> StoredMessage:
        message = StoredMessage(session_id=session_id, role=role, content=content, model=model)
        self.messages.setdefault(session_id, []).append(message)
        return message


__all__ = ["InMemorySessionRepository", "StoredMessage"]
