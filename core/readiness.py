from __future__ import annotations

import asyncio
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


class ReadinessSignal(Generic[T]):
    """One-shot completion primitive used by page registry entries.

    - fulfill(value) only has an effect the first time it is called.
    - wait() may be awaited by any number of callers, before or after fulfillment.
    - A fulfilled signal is never reused; owners replace it with a fresh one.

    The backing future is created lazily on the running loop, so a signal can be
    built outside of an event loop and still be awaited later.
    """

    def __init__(self) -> None:
        self._fulfilled = False
        self._value: Optional[T] = None
        self._future: Optional[asyncio.Future] = None
        self._waiters = 0
        self._scheduled = False

    # --- state -----------------------------------------------------------
    @property
    def is_fulfilled(self) -> bool:
        return self._fulfilled

    @property
    def is_scheduled(self) -> bool:
        """True once a fulfillment has been queued for a later callback."""
        return self._scheduled

    @property
    def value(self) -> Optional[T]:
        return self._value

    @property
    def waiters(self) -> int:
        return self._waiters

    def mark_scheduled(self) -> None:
        self._scheduled = True

    # --- completion ------------------------------------------------------
    def fulfill(self, value: T) -> bool:
        """Complete the signal. Returns False when it was already fulfilled."""
        if self._fulfilled:
            return False
        self._fulfilled = True
        self._value = value
        fut = self._future
        if fut is not None and not fut.done() and not fut.get_loop().is_closed():
            fut.set_result(value)
        return True

    async def wait(self) -> T:
        if self._fulfilled:
            return self._value  # type: ignore[return-value]
        loop = asyncio.get_running_loop()
        fut = self._future
        if fut is None or fut.get_loop() is not loop:
            fut = loop.create_future()
            self._future = fut
        self._waiters += 1
        try:
            # shield: one cancelled waiter must not cancel the shared completion
            return await asyncio.shield(fut)
        finally:
            self._waiters -= 1

    def __repr__(self) -> str:
        state = 'fulfilled' if self._fulfilled else ('scheduled' if self._scheduled else 'pending')
        return f'<ReadinessSignal {state} waiters={self._waiters}>'


__all__ = ['ReadinessSignal']
