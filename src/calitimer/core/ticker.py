"""Periodic tick sources for the timer state machine."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.1  # seconds


class Ticker(Protocol):
    """Handle to a repeating callback; owned by whoever acquired it."""

    def cancel(self) -> None: ...


TickerFactory = Callable[[Callable[[], None]], Ticker]


class LoopTicker:
    """Call *callback* every *interval* seconds on an asyncio event loop.

    Must be created from code running on the loop (or with an explicit
    *loop*).  After :meth:`cancel` returns, *callback* is never called again.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval: float = TICK_INTERVAL,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._callback = callback
        self._interval = interval
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._cancelled = False
        self._handle: asyncio.TimerHandle | None = self._loop.call_later(
            interval, self._fire
        )
        logger.debug("ticker acquired (interval=%ss)", interval)

    @property
    def cancelled(self) -> bool:
        """Return True once :meth:`cancel` has been called."""
        return self._cancelled

    def cancel(self) -> None:
        """Stop the repetition; safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        logger.debug("ticker released")

    def _fire(self) -> None:
        """Run the callback and schedule the next call, even if it raised."""
        self._handle = None
        if self._cancelled:
            return
        try:
            self._callback()
        finally:
            # The callback may have cancelled us.
            if not self._cancelled:
                self._handle = self._loop.call_later(self._interval, self._fire)


def loop_ticker(
    interval: float = TICK_INTERVAL,
    loop: asyncio.AbstractEventLoop | None = None,
) -> TickerFactory:
    """Return a ticker factory producing :class:`LoopTicker` instances."""

    def factory(callback: Callable[[], None]) -> Ticker:
        return LoopTicker(callback, interval=interval, loop=loop)

    return factory
