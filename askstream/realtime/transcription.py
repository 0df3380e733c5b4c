"""
Realtime transcription over a persistent websocket.

One socket per transcription session. After the handshake the session is
configured for server-side VAD and near-field noise reduction; audio is
then streamed in as base64 PCM16 and transcription events come back
through the callbacks.

Session phases: connecting -> open -> closing -> closed. Inbound frames
all pass through `dispatch()`, which drops empty, `null` and `[DONE]`
payloads as well as anything that is not a JSON object.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import inspect
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from pydantic import BaseModel
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from askstream.logging_config import logger
from askstream.models import RoutingMode
from askstream.provider.header_builder import build_realtime_headers
from askstream.settings import settings

PROVIDER_ID = "openai"
DONE_SENTINEL = "[DONE]"
NORMAL_CLOSURE = 1000
CLIENT_CLOSE_REASON = "Client initiated close."
TRANSCRIPT_COMPLETED_EVENT = "conversation.item.input_audio_transcription.completed"

MaybeAwaitable = Union[None, Awaitable[None]]


class SessionPhase(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class TranscriptionConfig(BaseModel):
    api_key: str
    language: str = "en"
    prompt: str = ""
    model: Optional[str] = None
    routing: RoutingMode = "direct"
    virtual_key: Optional[str] = None


@dataclass
class TranscriptionCallbacks:
    on_message: Optional[Callable[[Dict[str, Any]], MaybeAwaitable]] = None
    on_error: Optional[Callable[[BaseException], MaybeAwaitable]] = None
    on_close: Optional[Callable[[Optional[int], str], MaybeAwaitable]] = None


def build_session_update(config: TranscriptionConfig) -> Dict[str, Any]:
    model = (config.model or "").strip() or settings.transcription_model
    return {
        "type": "transcription_session.update",
        "session": {
            "input_audio_format": "pcm16",
            "input_audio_transcription": {
                "model": model,
                "prompt": config.prompt or "",
                "language": config.language or "en",
            },
            "turn_detection": {
                "type": "server_vad",
                "threshold": 0.5,
                "prefix_padding_ms": 200,
                "silence_duration_ms": 100,
            },
            "input_audio_noise_reduction": {"type": "near_field"},
        },
    }


def parse_inbound_frame(raw: Union[str, bytes, None]) -> Optional[Dict[str, Any]]:
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="ignore")
    if not raw or raw == "null" or raw == DONE_SENTINEL:
        return None
    try:
        message = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(message, dict):
        return None
    message["provider"] = PROVIDER_ID
    return message


async def _invoke(callback: Optional[Callable[..., MaybeAwaitable]], *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class RealtimeTranscriptionSession:
    def __init__(
        self,
        config: TranscriptionConfig,
        callbacks: Optional[TranscriptionCallbacks] = None,
        *,
        connect: Callable[..., Awaitable[Any]] = ws_connect,
    ) -> None:
        self.config = config
        # Private copy of the handlers; close() only flips `_detached`.
        self.callbacks = dataclasses.replace(callbacks) if callbacks else TranscriptionCallbacks()
        self._detached = False
        self.phase = SessionPhase.CLOSED
        self._connect = connect
        self._ws = None
        self._reader: Optional[asyncio.Task] = None

    @property
    def url(self) -> str:
        if self.config.routing == "relay":
            return settings.relay_realtime_url
        return settings.realtime_url

    async def open(self) -> "RealtimeTranscriptionSession":
        """
        Connect and configure the session.

        A failure before the handshake completes is reported to `on_error`
        and raised, once.
        """
        self.phase = SessionPhase.CONNECTING
        self._detached = False
        headers = build_realtime_headers(
            self.config.api_key,
            routing=self.config.routing,
            virtual_key=self.config.virtual_key,
        )
        try:
            self._ws = await self._connect(self.url, additional_headers=headers)
            logger.info("Realtime transcription socket opened (%s)", self.config.routing)
            await self._ws.send(json.dumps(build_session_update(self.config)))
        except Exception as exc:
            self.phase = SessionPhase.CLOSED
            logger.error("Realtime transcription socket failed to open: %s", exc)
            await _invoke(self.callbacks.on_error, exc)
            if self._ws is not None:
                await self._ws.close()
                self._ws = None
            raise

        self.phase = SessionPhase.OPEN
        self._reader = asyncio.ensure_future(self._read_loop())
        return self

    @property
    def is_open(self) -> bool:
        return self.phase is SessionPhase.OPEN and self._ws is not None

    async def send_audio(self, audio_base64: str) -> None:
        if not self.is_open:
            return
        await self._ws.send(
            json.dumps({"type": "input_audio_buffer.append", "audio": audio_base64})
        )

    async def keep_alive(self) -> None:
        """Send a heartbeat ping; no-op unless the socket is open."""
        if not self.is_open:
            return
        try:
            await self._ws.ping()
        except ConnectionClosed as exc:
            logger.warning("Realtime keep-alive failed: %s", exc)

    async def close(self) -> None:
        if not self.is_open:
            return
        self.phase = SessionPhase.CLOSING
        await self._ws.send(json.dumps({"type": "session.close"}))
        # Nothing after the close intent reaches the caller except on_close.
        self._detached = True
        await self._ws.close(code=NORMAL_CLOSURE, reason=CLIENT_CLOSE_REASON)
        if self._reader is not None:
            await self._reader

    async def dispatch(self, raw: Union[str, bytes, None]) -> None:
        if self.phase is not SessionPhase.OPEN or self._detached:
            return
        message = parse_inbound_frame(raw)
        if message is None:
            return
        try:
            await _invoke(self.callbacks.on_message, message)
        except Exception:
            logger.exception("Transcription message handler failed for %s", message.get("type"))

    async def _read_loop(self) -> None:
        ws = self._ws
        try:
            async for raw in ws:
                await self.dispatch(raw)
        except ConnectionClosed as exc:
            logger.warning("Realtime transcription socket closed abnormally: %s", exc)
            if not self._detached:
                await _invoke(self.callbacks.on_error, exc)
        finally:
            self.phase = SessionPhase.CLOSED
            code = getattr(ws, "close_code", None)
            reason = getattr(ws, "close_reason", None) or ""
            logger.info("Realtime transcription socket closed: %s %s", code, reason)
            await _invoke(self.callbacks.on_close, code, reason)


async def open_transcription_session(
    config: TranscriptionConfig,
    callbacks: Optional[TranscriptionCallbacks] = None,
    **kwargs: Any,
) -> RealtimeTranscriptionSession:
    return await RealtimeTranscriptionSession(config, callbacks, **kwargs).open()


def transcript_from_event(message: Dict[str, Any]) -> str:
    if message.get("type") != TRANSCRIPT_COMPLETED_EVENT:
        return ""
    transcript = message.get("transcript")
    return transcript.strip() if isinstance(transcript, str) else ""


def voice_draft_relay(ask_service, speaker: str = "Me") -> Callable[[Dict[str, Any]], None]:
    """`on_message` callback that feeds completed transcripts to the ask service."""

    def _on_message(message: Dict[str, Any]) -> None:
        transcript = transcript_from_event(message)
        if transcript:
            ask_service.set_voice_draft(speaker, transcript)

    return _on_message


__all__ = [
    "RealtimeTranscriptionSession",
    "SessionPhase",
    "TranscriptionCallbacks",
    "TranscriptionConfig",
    "build_session_update",
    "open_transcription_session",
    "parse_inbound_frame",
    "transcript_from_event",
    "voice_draft_relay",
]
