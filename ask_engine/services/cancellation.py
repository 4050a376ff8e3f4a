from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from ask_engine.errors import ExchangeCancelled

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag shared by one exchange and its transport calls."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExchangeCancelled()

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        When the token wins, the pending awaitable is cancelled and
        ``ExchangeCancelled`` is raised instead of its result.
        """

        self.raise_if_cancelled()
        operation = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({operation, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            operation.cancel()
            raise
        finally:
            waiter.cancel()

        if operation.done():
            return operation.result()

        operation.cancel()
        await asyncio.gather(operation, return_exceptions=True)
        raise ExchangeCancelled()
