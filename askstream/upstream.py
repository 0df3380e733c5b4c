"""
HTTP transport for provider calls.

`open_stream` returns an UpstreamStream once the provider has answered
with a 2xx status; HTTP and network errors before that point are raised
as UpstreamAPIError so the caller can decide whether to retry.
"""

import json
from typing import Any, AsyncIterator, Dict

import httpx

from .errors import UpstreamAPIError, UpstreamStreamError
from .error_classifier import extract_error_message
from .logging_config import logger
from .models import UpstreamRequest
from .settings import settings


def create_http_client() -> httpx.AsyncClient:
    # Bound connection setup only; token streams can legitimately idle.
    timeout = httpx.Timeout(None, connect=settings.upstream_timeout)
    return httpx.AsyncClient(timeout=timeout)


def _payload_for_log(body: Dict[str, Any]) -> str:
    try:
        text = json.dumps(body, ensure_ascii=False)
    except TypeError:
        text = repr(body)
    # Inline screenshots make the log unreadable.
    return text if len(text) <= 2000 else f"{text[:2000]}...<{len(text)} chars>"


async def _raise_for_status(response: httpx.Response, request: UpstreamRequest) -> None:
    if response.status_code < 400:
        return
    text = (await response.aread()).decode("utf-8", errors="ignore")
    await response.aclose()
    logger.warning(
        "Upstream HTTP error %s for %s; payload=%s; response=%s",
        response.status_code,
        request.url,
        _payload_for_log(request.body),
        text,
    )
    raise UpstreamAPIError(
        request.label,
        status_code=response.status_code,
        reason=response.reason_phrase,
        details=extract_error_message(text),
    )


class UpstreamStream:
    """An open streaming response; iterate `iter_chunks()` then `aclose()`."""

    def __init__(self, response: httpx.Response, request: UpstreamRequest) -> None:
        self._response = response
        self._request = request
        self._chunk_count = 0

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                if not chunk:
                    continue
                self._chunk_count += 1
                if self._chunk_count == 1:
                    logger.info("upstream: received first chunk from %s", self._request.url)
                yield chunk
        except httpx.HTTPError as exc:
            logger.warning("Upstream streaming transport error for %s: %s", self._request.url, exc)
            raise UpstreamStreamError(
                f"{self._request.label} streaming transport error", text=str(exc)
            ) from exc

    async def aclose(self) -> None:
        await self._response.aclose()


async def open_stream(client: httpx.AsyncClient, request: UpstreamRequest) -> UpstreamStream:
    logger.info("upstream: opening stream POST %s", request.url)
    http_request = client.build_request(
        "POST", request.url, headers=request.headers, json=request.body
    )
    try:
        response = await client.send(http_request, stream=True)
    except httpx.HTTPError as exc:
        logger.warning("Upstream connect error for %s: %s", request.url, exc)
        raise UpstreamAPIError(request.label, status_code=None, details=str(exc)) from exc

    await _raise_for_status(response, request)
    logger.info("upstream: connected to %s with status %s", request.url, response.status_code)
    return UpstreamStream(response, request)


async def post_json(client: httpx.AsyncClient, request: UpstreamRequest) -> Any:
    try:
        response = await client.post(request.url, headers=request.headers, json=request.body)
    except httpx.HTTPError as exc:
        logger.warning("Upstream connect error for %s: %s", request.url, exc)
        raise UpstreamAPIError(request.label, status_code=None, details=str(exc)) from exc

    await _raise_for_status(response, request)
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamAPIError(
            request.label,
            status_code=response.status_code,
            reason=response.reason_phrase,
            details="response body is not valid JSON",
        ) from exc


__all__ = ["UpstreamStream", "create_http_client", "open_stream", "post_json"]
