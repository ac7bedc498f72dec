"""
Run-wide cooperative cancellation.

One CancellationToken is created per run and shared by the dispatcher and
every worker. Process interrupts set it; nothing ever clears it.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import suppress
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class RunCancelled(Exception):
    """Raised by `CancellationToken.guard` when the token fires first."""


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._installed: list[signal.Signals] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    def cancel(self) -> None:
        if not self._event.is_set():
            logger.info("Cancellation requested; workers stop at their next statement")
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, aw: Awaitable[T]) -> T:
        """
        Await `aw` unless the token fires first.

        Raises:
            RunCancelled: the token was set before `aw` completed; `aw` is
                cancelled.
        """
        task = asyncio.ensure_future(aw)
        if self.is_set():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            raise RunCancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if task.done():
            return task.result()
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        raise RunCancelled()

    def install_signal_handlers(self) -> None:
        """
        Route SIGINT/SIGTERM on the running loop into this token.

        The first signal cancels the run; the handler then removes itself so
        a second interrupt falls through to the default behaviour.
        """
        loop = asyncio.get_running_loop()
        self._loop = loop
        for sig in INTERRUPT_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # No loop signal support (e.g. Windows, non-main thread).
                logger.debug("Signal handler for %s not installed", sig.name)
                continue
            self._installed.append(sig)

    def remove_signal_handlers(self) -> None:
        if self._loop is None:
            return
        for sig in list(self._installed):
            with suppress(Exception):
                self._loop.remove_signal_handler(sig)
        self._installed.clear()

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.warning("Received %s, cancelling run", sig.name)
        self.cancel()
        if self._loop is not None and sig in self._installed:
            self._loop.remove_signal_handler(sig)
            self._installed.remove(sig)
