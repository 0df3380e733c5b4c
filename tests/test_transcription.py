import asyncio
import json
from typing import Any, Dict, List

import pytest
from websockets.exceptions import ConnectionClosed

from askstream.realtime.transcription import (
    RealtimeTranscriptionSession,
    SessionPhase,
    TranscriptionCallbacks,
    TranscriptionConfig,
    build_session_update,
    open_transcription_session,
    parse_inbound_frame,
    transcript_from_event,
    voice_draft_relay,
)
from askstream.settings import settings


class FakeWebSocket:
    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.pings = 0
        self.close_code = None
        self.close_reason = None

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def ping(self) -> None:
        self.pings += 1

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_code = code
        self.close_reason = reason
        await self.incoming.put(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


class Recorder:
    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []
        self.errors: List[BaseException] = []
        self.closes: List[tuple] = []

    def callbacks(self) -> TranscriptionCallbacks:
        async def on_close(code, reason):
            self.closes.append((code, reason))

        return TranscriptionCallbacks(
            on_message=self.messages.append,
            on_error=self.errors.append,
            on_close=on_close,
        )


def _connector(ws: FakeWebSocket, calls: List[Dict[str, Any]]):
    async def connect(url, additional_headers=None):
        calls.append({"url": url, "headers": additional_headers})
        return ws

    return connect


def test_session_update_frame():
    frame = build_session_update(TranscriptionConfig(api_key="sk-1"))

    assert frame == {
        "type": "transcription_session.update",
        "session": {
            "input_audio_format": "pcm16",
            "input_audio_transcription": {
                "model": settings.transcription_model,
                "prompt": "",
                "language": "en",
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
    custom = build_session_update(TranscriptionConfig(api_key="sk-1", language="de", model="whisper-1"))
    assert custom["session"]["input_audio_transcription"]["language"] == "de"
    assert custom["session"]["input_audio_transcription"]["model"] == "whisper-1"


@pytest.mark.parametrize("raw", ["", None, "null", "[DONE]", "{not json", "[1, 2]", '"text"', b""])
def test_inbound_filter_drops_noise(raw):
    assert parse_inbound_frame(raw) is None


def test_inbound_frames_are_tagged_with_provider():
    assert parse_inbound_frame('{"type": "x"}') == {"type": "x", "provider": "openai"}
    assert parse_inbound_frame(b'{"type": "y"}') == {"type": "y", "provider": "openai"}


@pytest.mark.asyncio
async def test_open_sends_session_update_and_dispatches_messages():
    ws = FakeWebSocket()
    calls: List[Dict[str, Any]] = []
    recorder = Recorder()

    session = await open_transcription_session(
        TranscriptionConfig(api_key="sk-direct"),
        recorder.callbacks(),
        connect=_connector(ws, calls),
    )

    assert session.phase is SessionPhase.OPEN
    assert calls[0]["url"] == settings.realtime_url
    assert calls[0]["headers"]["Authorization"] == "Bearer sk-direct"
    assert calls[0]["headers"]["OpenAI-Beta"] == "realtime=v1"
    assert ws.sent[0]["type"] == "transcription_session.update"

    for frame in ["null", "[DONE]", "garbage", '{"type": "input_audio_buffer.speech_started"}']:
        await ws.incoming.put(frame)
    await asyncio.sleep(0.01)

    assert recorder.messages == [
        {"type": "input_audio_buffer.speech_started", "provider": "openai"}
    ]

    await session.send_audio("AAAA")
    assert ws.sent[-1] == {"type": "input_audio_buffer.append", "audio": "AAAA"}

    await session.keep_alive()
    assert ws.pings == 1

    await session.close()


@pytest.mark.asyncio
async def test_relay_routing_uses_relay_url_and_headers(monkeypatch):
    monkeypatch.setattr(settings, "relay_api_key", "relay-account")
    ws = FakeWebSocket()
    calls: List[Dict[str, Any]] = []

    session = await open_transcription_session(
        TranscriptionConfig(api_key="vk-1", routing="relay"),
        connect=_connector(ws, calls),
    )

    assert calls[0]["url"] == settings.relay_realtime_url
    assert calls[0]["headers"]["x-portkey-api-key"] == "relay-account"
    assert calls[0]["headers"]["x-portkey-virtual-key"] == "vk-1"
    assert calls[0]["headers"]["OpenAI-Beta"] == "realtime=v1"
    await session.close()


@pytest.mark.asyncio
async def test_close_sends_close_intent_and_detaches_callbacks():
    ws = FakeWebSocket()
    recorder = Recorder()
    session = await open_transcription_session(
        TranscriptionConfig(api_key="sk-1"), recorder.callbacks(), connect=_connector(ws, [])
    )

    await session.close()

    assert ws.sent[-1] == {"type": "session.close"}
    assert ws.close_code == 1000
    assert ws.close_reason == "Client initiated close."
    assert session.phase is SessionPhase.CLOSED
    assert recorder.closes == [(1000, "Client initiated close.")]

    # Closed sessions ignore further traffic.
    await session.dispatch('{"type": "late"}')
    await session.send_audio("BBBB")
    await session.keep_alive()
    await session.close()
    assert recorder.messages == []
    assert ws.pings == 0
    assert ws.sent[-1] == {"type": "session.close"}


@pytest.mark.asyncio
async def test_open_failure_reports_error_once_and_raises():
    recorder = Recorder()

    async def failing_connect(url, additional_headers=None):
        raise OSError("handshake refused")

    session = RealtimeTranscriptionSession(
        TranscriptionConfig(api_key="sk-1"), recorder.callbacks(), connect=failing_connect
    )
    with pytest.raises(OSError):
        await session.open()

    assert len(recorder.errors) == 1
    assert str(recorder.errors[0]) == "handshake refused"
    assert session.phase is SessionPhase.CLOSED
    assert recorder.closes == []


@pytest.mark.asyncio
async def test_abnormal_close_reports_error_then_close():
    ws = FakeWebSocket()
    recorder = Recorder()
    session = await open_transcription_session(
        TranscriptionConfig(api_key="sk-1"), recorder.callbacks(), connect=_connector(ws, [])
    )

    ws.close_code = 1006
    await ws.incoming.put(ConnectionClosed(None, None))
    await asyncio.sleep(0.01)

    assert len(recorder.errors) == 1
    assert recorder.closes == [(1006, "")]
    assert session.phase is SessionPhase.CLOSED


def test_transcript_relay_sets_voice_draft():
    class FakeAskService:
        def __init__(self) -> None:
            self.drafts = []

        def set_voice_draft(self, speaker, text):
            self.drafts.append((speaker, text))

    ask = FakeAskService()
    relay = voice_draft_relay(ask)

    relay({"type": "conversation.item.input_audio_transcription.delta", "delta": "hel"})
    relay({"type": "conversation.item.input_audio_transcription.completed", "transcript": "  "})
    relay(
        {
            "type": "conversation.item.input_audio_transcription.completed",
            "transcript": " hello there ",
            "provider": "openai",
        }
    )

    assert ask.drafts == [("Me", "hello there")]
    assert transcript_from_event({"type": "other", "transcript": "x"}) == ""


@pytest.mark.asyncio
async def test_reconnect_with_same_callbacks_still_delivers():
    recorder = Recorder()
    callbacks = recorder.callbacks()

    first_ws = FakeWebSocket()
    first = await open_transcription_session(
        TranscriptionConfig(api_key="sk-1"), callbacks, connect=_connector(first_ws, [])
    )
    await first.close()

    assert callbacks.on_message is not None
    assert callbacks.on_error is not None

    second_ws = FakeWebSocket()
    second = await open_transcription_session(
        TranscriptionConfig(api_key="sk-1"), callbacks, connect=_connector(second_ws, [])
    )
    await second_ws.incoming.put('{"type": "x"}')
    await asyncio.sleep(0.01)

    assert recorder.messages == [{"type": "x", "provider": "openai"}]
    await second.close()


@pytest.mark.asyncio
async def test_failing_message_handler_keeps_session_open():
    ws = FakeWebSocket()
    delivered: List[Dict[str, Any]] = []

    def on_message(message):
        delivered.append(message)
        if message["type"] == "bad":
            raise ValueError("handler bug")

    session = await open_transcription_session(
        TranscriptionConfig(api_key="sk-1"),
        TranscriptionCallbacks(on_message=on_message),
        connect=_connector(ws, []),
    )
    await ws.incoming.put('{"type": "bad"}')
    await ws.incoming.put('{"type": "good"}')
    await asyncio.sleep(0.01)

    assert [m["type"] for m in delivered] == ["bad", "good"]
    assert session.phase is SessionPhase.OPEN

    await session.close()
    assert ws.sent[-1] == {"type": "session.close"}
    assert ws.close_code == 1000
    assert session.phase is SessionPhase.CLOSED
