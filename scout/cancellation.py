"""Per-run cancellation token and cancellation-aware stream iteration."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-shot signal asking a streaming session to stop early.

    A fresh token is created for every run, so a late deadline can never
    cancel a later run. ``cancel()`` only takes effect the first time.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> bool:
        """Trigger the token. Returns False if it had already fired."""
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()


async def iterate_until_cancelled(
    stream: AsyncIterator[T], token: CancellationToken
) -> AsyncIterator[T]:
    """Yield items from ``stream`` until it ends or ``token`` fires.

    The token is raced against every pending read, so a producer blocked
    waiting on the network does not hold the run past its deadline. The
    source generator is closed on exit either way, including when the
    consuming task itself is cancelled mid-read.
    """
    waiter = asyncio.ensure_future(token.wait())
    read: asyncio.Future | None = None
    try:
        while not token.cancelled:
            read = asyncio.ensure_future(anext(stream))
            done, _ = await asyncio.wait(
                {read, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
            if read not in done:
                logger.info(f"Stream consumption stopped: {token.reason}")
                break
            try:
                item = read.result()
            except StopAsyncIteration:
                break
            yield item
    finally:
        waiter.cancel()
        if read is not None and not read.done():
            # the source must be suspended before aclose() can run
            read.cancel()
            with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                await read
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
