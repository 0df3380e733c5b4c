"""
Server-sent event decoding.

Chunks are split on newlines; only `data:` lines are considered, the
`[DONE]` sentinel and unparseable payloads are skipped. Each JSON payload
can produce an error event, a token event and a completed-text event, in
that order.
"""

from __future__ import annotations

import codecs
import json
from typing import AsyncIterator, List, Optional

from askstream.cancellation import CancellationToken
from askstream.models import StreamEvent
from askstream.provider.dialects import Dialect

DONE_SENTINEL = "[DONE]"


class SSEDecoder:
    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        events: List[StreamEvent] = []
        for line in lines:
            events.extend(self._decode_line(line))
        return events

    def flush(self) -> List[StreamEvent]:
        """Decode a trailing line the server did not terminate."""
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return self._decode_line(remainder)

    def _decode_line(self, line: str) -> List[StreamEvent]:
        stripped = line.strip()
        if not stripped.startswith("data:"):
            return []
        data = stripped[len("data:") :].strip()
        if not data or data == DONE_SENTINEL:
            return []
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            return []
        return self.decode_payload(payload)

    def decode_payload(self, payload) -> List[StreamEvent]:
        error = self.dialect.extract_error(payload)
        if error:
            return [StreamEvent(kind="error", text=error, raw=payload)]

        events: List[StreamEvent] = []
        token = self.dialect.extract_token(payload)
        if token:
            events.append(StreamEvent(kind="token", text=token, raw=payload))
        completed = self.dialect.extract_completed(payload)
        if completed:
            events.append(StreamEvent(kind="completed", text=completed, raw=payload))
        return events


async def decode_stream(
    chunks: AsyncIterator[bytes],
    dialect: Dialect,
    token: Optional[CancellationToken] = None,
) -> AsyncIterator[StreamEvent]:
    """
    Yield decoded events from a chunk iterator.

    When a cancellation token is given every read is guarded by it, so
    cancelling unblocks a pending read and raises RequestCancelled here.
    """
    decoder = SSEDecoder(dialect)
    iterator = chunks.__aiter__()
    while True:
        if token is not None:
            token.raise_if_cancelled()
        try:
            if token is not None:
                chunk = await token.guard(iterator.__anext__())
            else:
                chunk = await iterator.__anext__()
        except StopAsyncIteration:
            break
        for event in decoder.feed(chunk):
            yield event
            if token is not None:
                token.raise_if_cancelled()

    for event in decoder.flush():
        yield event


__all__ = ["DONE_SENTINEL", "SSEDecoder", "decode_stream"]
