"""Cooperative cancellation passed explicitly through every narration await."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """Raised by :meth:`CancellationToken.run` when the token fires first."""


class CancellationToken:
    """One-shot cancellation signal.

    ``cancel()`` is synchronous and idempotent; registered callbacks run once,
    immediately, so backends can silence audio before any await resumes.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation; returns a function that unregisters it."""
        if self.cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    async def wait(self) -> None:
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        On cancellation the pending work is cancelled and
        :class:`OperationCancelled` raised.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work.done():
            return work.result()

        work.cancel()
        raise OperationCancelled()

    async def sleep(self, seconds: float) -> bool:
        """Sleep ``seconds``; ``False`` if cancelled before it elapsed."""
        try:
            await self.run(asyncio.sleep(seconds))
        except OperationCancelled:
            return False
        return True


__all__ = ["CancellationToken", "OperationCancelled"]
