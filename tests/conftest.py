from __future__ import annotations

import asyncio
import itertools
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import pytest

from arc_governance.ethereum.registry import ContractRegistry
from arc_governance.ethereum.transport import (
    Block,
    ContractRef,
    LogEntry,
    LogFilter,
    Receipt,
    TransactionRevertedError,
)

GENESIS_PROTOCOL = "0x1111111111111111111111111111111111111111"
CONTRIBUTION_REWARD = "0x2222222222222222222222222222222222222222"
REDEEMER = "0x3333333333333333333333333333333333333333"
STAKING_TOKEN = "0x4444444444444444444444444444444444444444"
AVATAR = "0x5555555555555555555555555555555555555555"
BENEFICIARY = "0x6666666666666666666666666666666666666666"
OTHER_BENEFICIARY = "0x7777777777777777777777777777777777777777"
SENDER = "0x8888888888888888888888888888888888888888"
EXECUTABLE = "0x9999999999999999999999999999999999999999"

PROPOSAL_ID = "0x" + "ab" * 32
OTHER_PROPOSAL_ID = "0x" + "cd" * 32

CONTRACT_ADDRESSES = {
    "GenesisProtocol": GENESIS_PROTOCOL,
    "ContributionReward": CONTRIBUTION_REWARD,
    "Redeemer": REDEEMER,
}


class FakeChain:
    """In-memory `ChainTransport` and `AddressResolver` for tests."""

    def __init__(self) -> None:
        self.addresses: dict[str, str] = dict(CONTRACT_ADDRESSES)
        self.block_number = 100
        self.sent: list[tuple[str, str, list[Any]]] = []
        self.calls: list[tuple[str, str, list[Any]]] = []
        self.call_results: dict[tuple[str, str], Any] = {}
        self.hooks: dict[str, Callable[[str, list[Any]], None]] = {}
        self.fail_sends: set[str] = set()
        self.revert_methods: set[str] = set()
        self.log_query_errors: set[tuple[str, str]] = set()
        self.receipts: dict[str, Receipt] = {}
        self._logs: list[tuple[str, LogEntry]] = []
        self._tx_counter = itertools.count(1)
        self._log_counter = itertools.count()

    # -- test helpers --------------------------------------------------------

    def new_tx_hash(self) -> str:
        return "0x" + format(next(self._tx_counter), "064x")

    def mine(
        self, *, to_address: str | None = None, tx_hash: str | None = None, status: int = 1
    ) -> str:
        tx_hash = tx_hash or self.new_tx_hash()
        self.block_number += 1
        self.receipts[tx_hash] = Receipt(
            transaction_hash=tx_hash,
            block_number=self.block_number,
            status=status,
            from_address=SENDER,
            to_address=to_address,
        )
        return tx_hash

    def emit(self, contract_name: str, event_name: str, args: dict[str, Any], tx_hash: str) -> LogEntry:
        receipt = self.receipts[tx_hash]
        entry = LogEntry(
            transaction_hash=tx_hash,
            block_number=receipt.block_number,
            log_index=next(self._log_counter),
            address=self.addresses.get(contract_name, STAKING_TOKEN),
            event_name=event_name,
            args=args,
        )
        self._logs.append((contract_name, entry))
        return entry

    def set_call(self, contract_name: str, method: str, value: Any) -> None:
        self.call_results[(contract_name, method)] = value

    def sent_methods(self) -> list[str]:
        return [method for _, method, _ in self.sent]

    # -- AddressResolver -----------------------------------------------------

    async def resolve_deployed_address(self, name: str) -> str | None:
        return self.addresses.get(name)

    # -- ChainTransport ------------------------------------------------------

    async def send_transaction(self, contract: ContractRef, method: str, args: Sequence[Any]) -> str:
        self.sent.append((contract.name, method, list(args)))
        if method in self.fail_sends:
            raise RuntimeError(f"{method} rejected by node")
        status = 0 if method in self.revert_methods else 1
        tx_hash = self.mine(to_address=contract.address, status=status)
        hook = self.hooks.get(method)
        if hook is not None:
            hook(tx_hash, list(args))
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        await asyncio.sleep(0)
        receipt = self.receipts[tx_hash]
        if not receipt.succeeded:
            raise TransactionRevertedError(tx_hash)
        return receipt

    async def call(self, contract: ContractRef, method: str, args: Sequence[Any]) -> Any:
        self.calls.append((contract.name, method, list(args)))
        value = self.call_results[(contract.name, method)]
        if callable(value):
            value = value(*args)
        if isinstance(value, Exception):
            raise value
        return value

    def _matching(self, contract: ContractRef, event_name: str, log_filter: LogFilter) -> list[LogEntry]:
        matched = []
        for contract_name, entry in self._logs:
            if contract_name != contract.name or entry.event_name != event_name:
                continue
            if entry.block_number < log_filter.from_block:
                continue
            if log_filter.to_block is not None and entry.block_number > log_filter.to_block:
                continue
            if any(
                str(entry.args.get(key, "")).lower() != str(value).lower()
                for key, value in log_filter.argument_filters.items()
            ):
                continue
            matched.append(entry)
        return matched

    async def get_logs(
        self, contract: ContractRef, event_name: str, log_filter: LogFilter
    ) -> list[LogEntry]:
        await asyncio.sleep(0)
        if (contract.name, event_name) in self.log_query_errors:
            raise RuntimeError(f"log query for {event_name} timed out")
        return self._matching(contract, event_name, log_filter)

    async def watch_logs(
        self, contract: ContractRef, event_name: str, log_filter: LogFilter
    ) -> AsyncIterator[LogEntry]:
        seen: set[tuple[str, int]] = set()
        while True:
            for entry in self._matching(contract, event_name, log_filter):
                key = (entry.transaction_hash, entry.log_index)
                if key not in seen:
                    seen.add(key)
                    yield entry
            await asyncio.sleep(0.005)

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt:
        return self.receipts[tx_hash]

    async def get_block(self, tag: int | str = "latest") -> Block:
        number = self.block_number if tag == "latest" else int(tag)
        return Block(number=number, timestamp=1_700_000_000 + number * 15, gas_limit=8_000_000)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def registry() -> ContractRegistry:
    return ContractRegistry(addresses=CONTRACT_ADDRESSES)
