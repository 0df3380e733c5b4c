"""
Ask session orchestration.

AskService owns the ask window's SessionState and the single live
CancellationToken. A request moves the state idle -> loading -> streaming
-> idle; starting a new request or closing the window cancels the current
one first. Every observable change pushes a full state snapshot to the
surface.
"""

from __future__ import annotations

import itertools
import time
from typing import Any, Callable, Optional, Sequence

import httpx

from askstream.cancellation import CancellationToken
from askstream.error_classifier import is_multimodal_error
from askstream.errors import AskConfigurationError, RequestCancelled, StreamEventError
from askstream.logging_config import bind_request_id, logger, reset_request_id
from askstream.models import ASSISTANT_ROLE, USER_ROLE, AskResult, ModelInfo, SessionState
from askstream.prompts import (
    SCREEN_CONTEXT_QUESTION,
    SCREEN_CONTEXT_REQUEST,
    build_ask_messages,
    build_system_prompt,
    build_text_only_messages,
    format_conversation_for_prompt,
)
from askstream.provider.client import create_llm_client
from askstream.provider.reasoning import compute_effective_max_tokens
from askstream.services.collaborators import (
    AskSurface,
    ModelResolver,
    NoScreenCapture,
    ScreenCapture,
    ScreenshotResult,
    SessionRepository,
)
from askstream.settings import settings
from askstream.stream_decoder import decode_stream
from askstream.upstream import create_http_client

ASK_SESSION_KIND = "ask"
NEW_REQUEST_REASON = "New request received."
WINDOW_CLOSED_REASON = "Window closed by user"
DEFAULT_VOICE_SPEAKER = "Me"

LLMFactory = Callable[..., Any]


class AskService:
    def __init__(
        self,
        *,
        resolver: ModelResolver,
        surface: AskSurface,
        repository: SessionRepository,
        screen_capture: Optional[ScreenCapture] = None,
        llm_factory: Optional[LLMFactory] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        voice_draft_max_age: Optional[float] = None,
    ) -> None:
        self._resolver = resolver
        self._surface = surface
        self._repository = repository
        self._screen_capture = screen_capture or NoScreenCapture()
        self._llm_factory = llm_factory or self._create_llm
        self._http_client = http_client
        self._owns_http_client = False
        self._clock = clock
        self._voice_draft_max_age = (
            settings.voice_draft_max_age_seconds
            if voice_draft_max_age is None
            else voice_draft_max_age
        )
        self._state = SessionState()
        self._token: Optional[CancellationToken] = None
        self._request_ids = itertools.count(1)
        logger.info("AskService instance created")

    @property
    def state(self) -> dict:
        return self._state.snapshot()

    def _create_llm(self, model_info: ModelInfo, **options: Any):
        if self._http_client is None:
            self._http_client = create_http_client()
            self._owns_http_client = True
        return create_llm_client(model_info, http_client=self._http_client, **options)

    async def aclose(self) -> None:
        if self._token is not None:
            self._token.cancel("Service shutting down")
            self._token = None
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _broadcast(self) -> None:
        self._surface.publish_state(self._state.snapshot())

    def _is_active(self, token: CancellationToken) -> bool:
        return self._token is token

    def _begin_request(self) -> CancellationToken:
        if self._token is not None:
            self._token.cancel(NEW_REQUEST_REASON)
        token = CancellationToken()
        self._token = token
        return token

    # -- voice draft -------------------------------------------------------

    def set_voice_draft(self, speaker: Optional[str], text: Any) -> None:
        draft = text.strip() if isinstance(text, str) else ""
        if not draft:
            return
        self._state.voice_draft = draft
        self._state.voice_speaker = speaker or DEFAULT_VOICE_SPEAKER
        self._state.voice_draft_timestamp = self._clock()
        self._broadcast()

    def resolve_effective_prompt(self, user_prompt: Any) -> str:
        typed_prompt = user_prompt.strip() if isinstance(user_prompt, str) else ""
        if typed_prompt:
            return typed_prompt

        voice_draft = self._state.voice_draft.strip()
        draft_age = self._clock() - (self._state.voice_draft_timestamp or 0)
        if voice_draft and draft_age <= self._voice_draft_max_age:
            return voice_draft
        return ""

    # -- window transitions --------------------------------------------------

    async def toggle_ask(self, input_screen_only: bool = False) -> None:
        visible = self._surface.is_visible()

        if input_screen_only and (not visible or self._state.show_text_input):
            await self.send_message("", [])
            return

        has_content = (
            self._state.is_loading
            or self._state.is_streaming
            or bool(self._state.current_response)
        )
        if visible and has_content:
            self._state.show_text_input = not self._state.show_text_input
            self._broadcast()
            return

        if visible:
            self._surface.request_visibility(False)
            self._state.is_visible = False
            return

        logger.info("Showing hidden ask window")
        self._surface.request_visibility(True)
        self._state.is_visible = True
        self._state.show_text_input = True
        self._broadcast()

    async def close_ask(self) -> AskResult:
        if self._token is not None:
            self._token.cancel(WINDOW_CLOSED_REASON)
            self._token = None

        self._state = SessionState(
            voice_draft=self._state.voice_draft,
            voice_speaker=self._state.voice_speaker,
            voice_draft_timestamp=self._state.voice_draft_timestamp,
        )
        self._broadcast()
        self._surface.request_visibility(False)
        return AskResult(success=True)

    # -- ask request ---------------------------------------------------------

    async def send_message(
        self,
        user_prompt: str = "",
        conversation_history: Optional[Sequence[str]] = None,
    ) -> AskResult:
        log_context = bind_request_id(f"ask-{next(self._request_ids)}")
        try:
            return await self._send_message(user_prompt, conversation_history)
        finally:
            reset_request_id(log_context)

    async def _send_message(
        self, user_prompt: str, conversation_history: Optional[Sequence[str]]
    ) -> AskResult:
        effective_prompt = self.resolve_effective_prompt(user_prompt)
        user_request = effective_prompt or SCREEN_CONTEXT_REQUEST

        token = self._begin_request()
        self._surface.request_visibility(True)
        self._state.is_visible = True
        self._state.is_loading = True
        self._state.is_streaming = False
        self._state.current_question = effective_prompt or SCREEN_CONTEXT_QUESTION
        self._state.current_response = ""
        self._state.show_text_input = False
        self._broadcast()

        try:
            logger.info("Processing ask request: %s", user_request[:80])

            session_id = await token.guard(self._resolve_session_id())
            if effective_prompt:
                await token.guard(self._persist_message(session_id, USER_ROLE, effective_prompt))

            raw_model_info = await token.guard(self._resolver.get_current_model_info("llm"))
            model_info = ModelInfo.model_validate(raw_model_info) if raw_model_info else None
            if model_info is None or not model_info.api_key:
                raise AskConfigurationError("AI model or API key not configured.")
            logger.info("Using model %s for provider %s", model_info.model, model_info.provider)

            screenshot = await self._capture_screenshot(token)

            history_text = format_conversation_for_prompt(conversation_history)
            preset_prompt = await token.guard(self._resolver.get_selected_preset_prompt())
            reasoning_effort = await token.guard(self._resolver.get_reasoning_effort())
            app_settings = await token.guard(self._resolver.get_settings())
            max_tokens = compute_effective_max_tokens(
                model_info.model, reasoning_effort, (app_settings or {}).get("maxTokens")
            )

            system_prompt = build_system_prompt(preset_prompt or "", history_text)
            llm = self._llm_factory(
                model_info,
                temperature=settings.default_temperature,
                max_tokens=max_tokens,
                reasoning_effort=reasoning_effort,
            )

            try:
                stream = await token.guard(
                    llm.stream_chat(build_ask_messages(system_prompt, user_request, screenshot))
                )
            except RequestCancelled:
                raise
            except Exception as exc:
                if not (screenshot and is_multimodal_error(exc)):
                    raise
                logger.warning("Multimodal request failed, retrying with text only: %s", exc)
                stream = await token.guard(
                    llm.stream_chat(build_text_only_messages(system_prompt, user_request))
                )

            stream_error = await self._process_stream(
                stream, llm.dialect, session_id, token, model_info.model
            )
            return AskResult(success=stream_error is None, error=stream_error)

        except RequestCancelled as exc:
            logger.info("Ask request cancelled before streaming. Reason: %s", exc.reason)
            return AskResult(success=False, error=exc.reason)
        except Exception as exc:
            logger.error("Error during ask request: %s", exc, exc_info=True)
            message = str(exc) or "Unknown error occurred"
            if self._is_active(token):
                self._state.is_loading = False
                self._state.is_streaming = False
                self._state.show_text_input = True
                self._broadcast()
                self._surface.publish_stream_error(message)
            return AskResult(success=False, error=message)

    async def _capture_screenshot(self, token: CancellationToken) -> Optional[str]:
        try:
            raw = await token.guard(self._screen_capture.capture_screenshot(quality="medium"))
            result = ScreenshotResult.model_validate(raw)
        except RequestCancelled:
            raise
        except Exception as exc:
            logger.warning("Screen capture failed, continuing with text only: %s", exc)
            return None
        if not result.success or not result.base64:
            logger.info("No screenshot attached: %s", result.error or "capture unavailable")
            return None
        return result.base64

    async def _process_stream(
        self,
        stream,
        dialect,
        session_id: Optional[str],
        token: CancellationToken,
        model: str,
    ) -> Optional[str]:
        """
        Read the token stream into the session state.

        Returns the error message surfaced to the user, if any. Whatever
        text was accumulated is published and persisted on every exit path.
        """
        full_response = ""
        completed_text = ""
        stream_error: Optional[str] = None

        try:
            if self._is_active(token):
                self._state.is_loading = False
                self._state.is_streaming = True
                self._broadcast()

            async for event in decode_stream(stream.iter_chunks(), dialect, token):
                if event.kind == "error":
                    raise StreamEventError(event.text)
                if event.kind == "token":
                    full_response += event.text
                    if self._is_active(token):
                        self._state.current_response = full_response
                        self._broadcast()
                elif event.kind == "completed" and not completed_text:
                    completed_text = event.text
        except RequestCancelled as exc:
            logger.info("Stream reading was intentionally cancelled. Reason: %s", exc.reason)
        except Exception as exc:
            if token.cancelled:
                logger.info("Stream ended after cancellation (%s): %s", token.reason, exc)
            else:
                logger.error("Error while processing stream: %s", exc)
                stream_error = str(exc) or "Unknown streaming error"
                if self._is_active(token):
                    self._surface.publish_stream_error(stream_error)
        finally:
            try:
                await stream.aclose()
            except Exception as exc:
                logger.warning("Failed to close upstream stream: %s", exc)

            if not full_response and completed_text:
                full_response = completed_text
            if self._is_active(token):
                self._state.is_loading = False
                self._state.is_streaming = False
                self._state.current_response = full_response
                self._broadcast()
            if full_response:
                await self._persist_message(session_id, ASSISTANT_ROLE, full_response, model=model)

        return stream_error

    # -- persistence ---------------------------------------------------------

    async def _resolve_session_id(self) -> Optional[str]:
        try:
            return await self._repository.get_or_create_active(ASK_SESSION_KIND)
        except Exception:
            logger.exception("DB: failed to resolve active ask session")
            return None

    async def _persist_message(
        self,
        session_id: Optional[str],
        role: str,
        content: str,
        model: Optional[str] = None,
    ) -> bool:
        if session_id is None:
            logger.warning("DB: no active session, %s message not saved", role)
            return False
        try:
            await self._repository.add_message(
                session_id=session_id, role=role, content=content, model=model
            )
        except Exception:
            logger.exception("DB: failed to save %s message to session %s", role, session_id)
            return False
        logger.info("DB: saved %s message to session %s", role, session_id)
        return True


__all__ = [
    "ASK_SESSION_KIND",
    "AskService",
    "NEW_REQUEST_REASON",
    "WINDOW_CLOSED_REASON",
]
