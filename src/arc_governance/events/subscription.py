from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from types import TracebackType
from typing import Generic, TypeVar

from arc_governance.observability.logging import get_logger

T = TypeVar("T")

_END = object()


class Subscription(Generic[T]):
    """Handle over a live event stream.

    The source iterator is pumped by its own task into a queue, so several
    subscriptions can run side by side. A source failure is raised to the
    consumer once and ends the stream. `close()` may be called any number of
    times; results of queries already in flight are dropped.
    """

    def __init__(self, source: AsyncIterator[T], *, name: str = "subscription") -> None:
        self._source = source
        self._name = name
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._finished = False
        self._task = asyncio.create_task(self._pump(), name=name)

    @property
    def closed(self) -> bool:
        return self._closed

    async def _pump(self) -> None:
        try:
            async for item in self._source:
                if self._closed:
                    return
                await self._queue.put(item)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            get_logger("subscription").warning(
                "subscription_failed", subscription=self._name, error=str(exc)
            )
            await self._queue.put(exc)
        finally:
            await self._queue.put(_END)

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, Exception):
            self._finished = True
            raise item
        return item  # type: ignore[return-value]

    async def next(self, timeout: float | None = None) -> T:
        return await asyncio.wait_for(self.__anext__(), timeout)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()
        self._finished = True
        self._queue.put_nowait(_END)

    async def __aenter__(self) -> Subscription[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
