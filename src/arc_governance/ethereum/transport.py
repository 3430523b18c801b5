"""Collaborator contract for talking to an Ethereum node.

Everything above this module works against `ChainTransport` so that the
wrappers, the correlator and the tracker can be driven by any node client.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol

from arc_governance.errors import ArcError
from arc_governance.types import Address, Hash


class TransactionRevertedError(ArcError):
    def __init__(self, tx_hash: Hash) -> None:
        self.tx_hash = tx_hash
        super().__init__(f"transaction {tx_hash} reverted")


@dataclass(slots=True, frozen=True)
class ContractRef:
    name: str
    address: Address


@dataclass(slots=True, frozen=True)
class LogFilter:
    from_block: int = 0
    to_block: int | None = None
    argument_filters: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(slots=True, frozen=True)
class LogEntry:
    transaction_hash: Hash
    block_number: int
    log_index: int
    address: Address
    event_name: str
    args: Mapping[str, Any]


@dataclass(slots=True, frozen=True)
class Receipt:
    transaction_hash: Hash
    block_number: int
    status: int
    from_address: Address
    to_address: Address | None
    contract_address: Address | None = None
    gas_used: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(slots=True, frozen=True)
class Block:
    number: int
    timestamp: int
    gas_limit: int = 0


class ChainTransport(Protocol):
    async def send_transaction(
        self, contract: ContractRef, method: str, args: Sequence[Any]
    ) -> Hash: ...

    async def wait_for_receipt(self, tx_hash: Hash) -> Receipt: ...

    async def call(self, contract: ContractRef, method: str, args: Sequence[Any]) -> Any: ...

    async def get_logs(
        self, contract: ContractRef, event_name: str, log_filter: LogFilter
    ) -> list[LogEntry]: ...

    def watch_logs(
        self, contract: ContractRef, event_name: str, log_filter: LogFilter
    ) -> AsyncIterator[LogEntry]: ...

    async def get_transaction_receipt(self, tx_hash: Hash) -> Receipt: ...

    async def get_block(self, tag: int | str = "latest") -> Block: ...


class AddressResolver(Protocol):
    async def resolve_deployed_address(self, name: str) -> Address | None: ...
