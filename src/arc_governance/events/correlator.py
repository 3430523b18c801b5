"""Group logs from several contracts into one record per transaction."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from arc_governance.errors import AggregationError, ConfigurationError
from arc_governance.ethereum.registry import ContractRegistry
from arc_governance.ethereum.transport import (
    ChainTransport,
    ContractRef,
    LogEntry,
    LogFilter,
    Receipt,
)
from arc_governance.events.subscription import Subscription
from arc_governance.observability.logging import get_logger
from arc_governance.types import Hash


@dataclass(slots=True, frozen=True)
class EventSpecifier:
    source: str
    event_name: str
    label: str


@dataclass(slots=True, frozen=True)
class EventMatcher:
    contract: ContractRef
    event_name: str
    label: str


@dataclass(slots=True, frozen=True)
class AggregatedEvent:
    transaction_hash: Hash
    block_number: int
    receipt: Receipt
    events: Mapping[str, LogEntry]

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self.events)


class EventCorrelator:
    def __init__(
        self,
        transport: ChainTransport,
        registry: ContractRegistry,
        specifiers: Sequence[EventSpecifier],
        *,
        poll_interval_seconds: float = 2.0,
    ) -> None:
        if not specifiers:
            raise ConfigurationError("at least one event specifier is required")
        labels = [specifier.label for specifier in specifiers]
        if len(set(labels)) != len(labels):
            raise ConfigurationError("event specifier labels must be unique")
        self._transport = transport
        self._matchers: tuple[EventMatcher, ...] = tuple(
            EventMatcher(
                contract=registry.require(specifier.source),
                event_name=specifier.event_name,
                label=specifier.label,
            )
            for specifier in specifiers
        )
        self._poll_interval_seconds = poll_interval_seconds
        self._logger = get_logger("event_correlator")

    @property
    def matchers(self) -> tuple[EventMatcher, ...]:
        return self._matchers

    async def _query(self, matcher: EventMatcher, log_filter: LogFilter) -> list[LogEntry]:
        try:
            return await self._transport.get_logs(matcher.contract, matcher.event_name, log_filter)
        except Exception as exc:
            self._logger.warning(
                "log_query_failed",
                contract=matcher.contract.name,
                event_name=matcher.event_name,
                from_block=log_filter.from_block,
                to_block=log_filter.to_block,
                error=str(exc),
            )
            raise AggregationError(
                f"log query for {matcher.contract.name}.{matcher.event_name} failed: {exc}"
            ) from exc

    async def fetch(self, from_block: int = 0, to_block: int | None = None) -> list[AggregatedEvent]:
        log_filter = LogFilter(from_block=from_block, to_block=to_block)
        batches = [await self._query(matcher, log_filter) for matcher in self._matchers]

        grouped: dict[Hash, dict[str, LogEntry]] = {}
        for matcher, entries in zip(self._matchers, batches):
            for entry in sorted(entries, key=lambda item: (item.block_number, item.log_index)):
                labelled = grouped.setdefault(entry.transaction_hash, {})
                labelled.setdefault(matcher.label, entry)

        def first_position(events: Mapping[str, LogEntry]) -> tuple[int, int]:
            return min((entry.block_number, entry.log_index) for entry in events.values())

        ordered = sorted(grouped.items(), key=lambda item: first_position(item[1]))
        aggregates: list[AggregatedEvent] = []
        for tx_hash, found in ordered:
            receipt = await self._receipt(tx_hash)
            events = {
                matcher.label: found[matcher.label]
                for matcher in self._matchers
                if matcher.label in found
            }
            aggregates.append(
                AggregatedEvent(
                    transaction_hash=tx_hash,
                    block_number=first_position(events)[0],
                    receipt=receipt,
                    events=MappingProxyType(events),
                )
            )
        return aggregates

    async def _receipt(self, tx_hash: Hash) -> Receipt:
        try:
            return await self._transport.get_transaction_receipt(tx_hash)
        except Exception as exc:
            raise AggregationError(f"receipt lookup for {tx_hash} failed: {exc}") from exc

    async def _latest_block(self) -> int:
        try:
            return (await self._transport.get_block("latest")).number
        except Exception as exc:
            raise AggregationError(f"latest block lookup failed: {exc}") from exc

    async def stream(
        self, from_block: int | None = None, *, include_history: bool = False
    ) -> AsyncIterator[AggregatedEvent]:
        """Yield aggregates in ascending block order as blocks are mined.

        Without `include_history` only blocks mined after the call are read.
        """
        latest = await self._latest_block()
        if include_history:
            for aggregate in await self.fetch(from_block or 0, latest):
                yield aggregate
        next_block = max(latest + 1, from_block or 0)

        while True:
            await asyncio.sleep(self._poll_interval_seconds)
            latest = await self._latest_block()
            if latest < next_block:
                continue
            for aggregate in await self.fetch(next_block, latest):
                yield aggregate
            next_block = latest + 1

    def watch(self, from_block: int | None = None) -> Subscription[AggregatedEvent]:
        return Subscription(self.stream(from_block), name="correlator.watch")

    def get_then_watch(self, from_block: int = 0) -> Subscription[AggregatedEvent]:
        return Subscription(
            self.stream(from_block, include_history=True), name="correlator.get_then_watch"
        )
