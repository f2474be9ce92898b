"""Cancellation: Cooperative cancellation token for the relayer loop.

The token wraps an :class:`asyncio.Event` and additionally runs registered
callbacks synchronously when it fires, so state owned by a subscriber (the
scheduler's run state) changes in the same step as the cancellation itself.

.. code-block:: python

    >>> token = CancellationToken()
    >>> token.add_callback(lambda: print("stopped"))
    >>> token.cancel()
    stopped
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Fire-once cancellation signal.

    :ivar cancelled: True once :meth:`cancel` has been called.
    """

    def __init__(self) -> None:
        """Initialize an unfired token."""
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        """Check whether the token has fired."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Fire the token and run all callbacks. Idempotent."""
        if self._event.is_set():
            return
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback; runs immediately if the token already fired.

        :param callback: Zero-argument callable.
        """
        if self._event.is_set():
            callback()
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a callback if it is still pending."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def wait(self) -> None:
        """Wait until the token fires."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep until the deadline or until cancellation, whichever is first.

        :param seconds: Maximum time to sleep.
        :returns: True if the token fired, False if the deadline passed.
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
