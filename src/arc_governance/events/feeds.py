from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any, Generic, Protocol, TypeVar

from arc_governance.errors import AggregationError
from arc_governance.ethereum.transport import ChainTransport, ContractRef, LogEntry, LogFilter
from arc_governance.events.subscription import Subscription

S = TypeVar("S")
S_co = TypeVar("S_co", covariant=True)
T = TypeVar("T")


class EventSource(Protocol[S_co]):
    async def fetch(self, from_block: int = 0, to_block: int | None = None) -> list[S_co]: ...

    def stream(
        self, from_block: int | None = None, *, include_history: bool = False
    ) -> AsyncIterator[S_co]: ...


class LogSource:
    """Decoded logs of a single contract event, optionally filtered by indexed args."""

    def __init__(
        self,
        transport: ChainTransport,
        contract: ContractRef,
        event_name: str,
        argument_filters: Mapping[str, Any] | None = None,
    ) -> None:
        self._transport = transport
        self._contract = contract
        self._event_name = event_name
        self._argument_filters = dict(argument_filters or {})

    def _filter(self, from_block: int, to_block: int | None = None) -> LogFilter:
        return LogFilter(
            from_block=from_block,
            to_block=to_block,
            argument_filters=self._argument_filters,
        )

    async def fetch(self, from_block: int = 0, to_block: int | None = None) -> list[LogEntry]:
        try:
            entries = await self._transport.get_logs(
                self._contract, self._event_name, self._filter(from_block, to_block)
            )
        except Exception as exc:
            raise AggregationError(
                f"log query for {self._contract.name}.{self._event_name} failed: {exc}"
            ) from exc
        return sorted(entries, key=lambda entry: (entry.block_number, entry.log_index))

    async def stream(
        self, from_block: int | None = None, *, include_history: bool = False
    ) -> AsyncIterator[LogEntry]:
        latest = (await self._transport.get_block("latest")).number
        if include_history:
            for entry in await self.fetch(from_block or 0, latest):
                yield entry
        start = max(latest + 1, from_block or 0)
        async for entry in self._transport.watch_logs(
            self._contract, self._event_name, self._filter(start)
        ):
            yield entry


class EventFeed(Generic[S, T]):
    """Restartable get / watch / get-then-watch view over an event source.

    `transform` may return None to drop an item.
    """

    def __init__(
        self,
        source: EventSource[S],
        transform: Callable[[S], Awaitable[T | None]],
        *,
        name: str = "feed",
    ) -> None:
        self._source = source
        self._transform = transform
        self._name = name

    async def get(self, from_block: int = 0, to_block: int | None = None) -> list[T]:
        results: list[T] = []
        for item in await self._source.fetch(from_block, to_block):
            transformed = await self._transform(item)
            if transformed is not None:
                results.append(transformed)
        return results

    async def _transformed(self, items: AsyncIterator[S]) -> AsyncIterator[T]:
        async for item in items:
            transformed = await self._transform(item)
            if transformed is not None:
                yield transformed

    def watch(self, from_block: int | None = None) -> Subscription[T]:
        return Subscription(
            self._transformed(self._source.stream(from_block)), name=f"{self._name}.watch"
        )

    def get_then_watch(self, from_block: int = 0) -> Subscription[T]:
        return Subscription(
            self._transformed(self._source.stream(from_block, include_history=True)),
            name=f"{self._name}.get_then_watch",
        )
