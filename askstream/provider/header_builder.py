"""
Request headers per routing mode.

- direct: `Authorization: Bearer <key>`
- relay: the relay's own account key plus the user's virtual key
- streaming requests ask for `text/event-stream`
"""

from __future__ import annotations

from typing import Dict, Optional

from askstream.models import RoutingMode
from askstream.settings import settings

REALTIME_BETA_HEADER = ("OpenAI-Beta", "realtime=v1")


def build_upstream_headers(
    api_key: str,
    *,
    routing: RoutingMode,
    is_stream: bool,
    virtual_key: Optional[str] = None,
) -> Dict[str, str]:
    headers: Dict[str, str] = {
        "Accept": "text/event-stream" if is_stream else "application/json",
        "Content-Type": "application/json",
    }
    headers.update(build_auth_headers(api_key, routing=routing, virtual_key=virtual_key))
    return headers


def build_auth_headers(
    api_key: str,
    *,
    routing: RoutingMode,
    virtual_key: Optional[str] = None,
) -> Dict[str, str]:
    if routing == "relay":
        return {
            "x-portkey-api-key": settings.relay_api_key,
            "x-portkey-virtual-key": virtual_key or api_key,
        }
    return {"Authorization": f"Bearer {api_key}"}


def build_realtime_headers(
    api_key: str,
    *,
    routing: RoutingMode,
    virtual_key: Optional[str] = None,
) -> Dict[str, str]:
    headers = build_auth_headers(api_key, routing=routing, virtual_key=virtual_key)
    name, value = REALTIME_BETA_HEADER
    headers[name] = value
    return headers


__all__ = ["build_auth_headers", "build_realtime_headers", "build_upstream_headers"]
