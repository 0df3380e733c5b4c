"""
Cancellation tokens for ask requests.

One token represents one request attempt. Cancelling it wakes every
`guard()` currently awaiting on its behalf, so a read loop blocked on the
network unwinds without waiting for the next chunk.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from askstream.errors import RequestCancelled

T = TypeVar("T")


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled(self._reason)

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await `awaitable` unless the token is cancelled first.

        On cancellation the pending operation is cancelled and
        RequestCancelled is raised.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise RequestCancelled(self._reason)

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task.cancelled():
            raise RequestCancelled(self._reason)
        return task.result()


__all__ = ["CancellationToken"]
