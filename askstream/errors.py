"""
Exception taxonomy for ask requests.

Configuration and upstream errors end the current attempt and are reported
to the ask surface. Cancellation is raised only to unwind a superseded or
closed request and is never reported as an error.
"""

from __future__ import annotations

from typing import Optional


class AskError(Exception):
    """Base class for errors raised while serving an ask request."""


class AskConfigurationError(AskError):
    """No model or credentials are configured for the ask request."""


class UpstreamAPIError(AskError):
    """
    Non-2xx response or network failure talking to a provider.

    The message keeps the shape "<label> API error: <status> <reason> - <details>"
    so callers can pattern-match on it (the multimodal retry does).
    """

    def __init__(
        self,
        label: str,
        *,
        status_code: Optional[int],
        reason: str = "",
        details: str = "",
    ) -> None:
        self.label = label
        self.status_code = status_code
        self.reason = reason
        self.details = details
        status = "" if status_code is None else str(status_code)
        head = " ".join(part for part in (status, reason) if part)
        suffix = f" - {details}" if details else ""
        super().__init__(f"{label} API error: {head}{suffix}")


class UpstreamStreamError(AskError):
    """Transport failure after the stream was opened."""

    def __init__(self, message: str, *, text: str = "") -> None:
        super().__init__(message)
        self.text = text


class StreamEventError(AskError):
    """An error event decoded from inside the token stream."""


class RequestCancelled(AskError):
    """The request was superseded or its surface was closed."""

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason or "cancelled"
        super().__init__(self.reason)


__all__ = [
    "AskError",
    "AskConfigurationError",
    "UpstreamAPIError",
    "UpstreamStreamError",
    "StreamEventError",
    "RequestCancelled",
]
