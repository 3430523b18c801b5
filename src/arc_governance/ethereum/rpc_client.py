from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from hexbytes import HexBytes
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from arc_governance.config import AppSettings
from arc_governance.ethereum.abi import abi_for
from arc_governance.ethereum.transport import (
    Block,
    ContractRef,
    LogEntry,
    LogFilter,
    Receipt,
    TransactionRevertedError,
)
from arc_governance.types import Address, Hash


class RpcClientFactory:
    """Thin factory for AsyncWeb3 to keep transport construction deterministic."""

    def __init__(self, settings: AppSettings) -> None:
        self._settings = settings

    def create(self) -> AsyncWeb3:
        return AsyncWeb3(AsyncHTTPProvider(self._settings.ethereum_rpc_url))

    def create_transport(self) -> Web3Transport:
        return Web3Transport(
            self.create(),
            default_account=self._settings.default_account or None,
            poll_interval_seconds=self._settings.event_poll_interval_seconds,
        )


def _plain(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, HexBytes)):
        return Web3.to_hex(value)
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return tuple(_plain(item) for item in value)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _receipt(raw: Mapping[str, Any]) -> Receipt:
    return Receipt(
        transaction_hash=Web3.to_hex(raw["transactionHash"]),
        block_number=int(raw["blockNumber"]),
        status=int(raw.get("status", 1)),
        from_address=str(raw["from"]),
        to_address=raw.get("to"),
        contract_address=raw.get("contractAddress"),
        gas_used=int(raw.get("gasUsed", 0)),
    )


def _log_entry(raw: Mapping[str, Any]) -> LogEntry:
    return LogEntry(
        transaction_hash=Web3.to_hex(raw["transactionHash"]),
        block_number=int(raw["blockNumber"]),
        log_index=int(raw["logIndex"]),
        address=str(raw["address"]),
        event_name=str(raw["event"]),
        args=_plain(dict(raw["args"])),
    )


class Web3Transport:
    """`ChainTransport` backed by web3.py's async client."""

    def __init__(
        self,
        w3: AsyncWeb3,
        *,
        default_account: Address | None = None,
        poll_interval_seconds: float = 2.0,
    ) -> None:
        self._w3 = w3
        self._default_account = default_account
        self._poll_interval_seconds = poll_interval_seconds

    def _contract(self, contract: ContractRef) -> Any:
        return self._w3.eth.contract(
            address=Web3.to_checksum_address(contract.address),
            abi=abi_for(contract.name),
        )

    async def _sender(self) -> Address:
        if self._default_account:
            return Web3.to_checksum_address(self._default_account)
        accounts = await self._w3.eth.accounts
        if not accounts:
            raise RuntimeError("node exposes no unlocked accounts and no default_account is set")
        return str(accounts[0])

    async def send_transaction(
        self, contract: ContractRef, method: str, args: Sequence[Any]
    ) -> Hash:
        function = getattr(self._contract(contract).functions, method)(*args)
        tx_hash = await function.transact({"from": await self._sender()})
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: Hash) -> Receipt:
        raw = await self._w3.eth.wait_for_transaction_receipt(HexBytes(tx_hash))
        receipt = _receipt(raw)
        if not receipt.succeeded:
            raise TransactionRevertedError(tx_hash)
        return receipt

    async def call(self, contract: ContractRef, method: str, args: Sequence[Any]) -> Any:
        function = getattr(self._contract(contract).functions, method)(*args)
        result = await function.call({"from": await self._sender()})
        return _plain(result)

    async def get_logs(
        self, contract: ContractRef, event_name: str, log_filter: LogFilter
    ) -> list[LogEntry]:
        event = getattr(self._contract(contract).events, event_name)
        raw_logs = await event.get_logs(
            argument_filters=dict(log_filter.argument_filters) or None,
            from_block=log_filter.from_block,
            to_block=log_filter.to_block if log_filter.to_block is not None else "latest",
        )
        return [_log_entry(raw) for raw in raw_logs]

    async def watch_logs(
        self, contract: ContractRef, event_name: str, log_filter: LogFilter
    ) -> AsyncIterator[LogEntry]:
        next_block = log_filter.from_block
        while True:
            latest = await self._w3.eth.block_number
            if log_filter.to_block is not None:
                latest = min(latest, log_filter.to_block)
            if latest >= next_block:
                window = LogFilter(
                    from_block=next_block,
                    to_block=latest,
                    argument_filters=log_filter.argument_filters,
                )
                for entry in await self.get_logs(contract, event_name, window):
                    yield entry
                next_block = latest + 1
            if log_filter.to_block is not None and next_block > log_filter.to_block:
                return
            await asyncio.sleep(self._poll_interval_seconds)

    async def get_transaction_receipt(self, tx_hash: Hash) -> Receipt:
        return _receipt(await self._w3.eth.get_transaction_receipt(HexBytes(tx_hash)))

    async def get_block(self, tag: int | str = "latest") -> Block:
        raw = await self._w3.eth.get_block(tag)
        return Block(
            number=int(raw["number"]),
            timestamp=int(raw["timestamp"]),
            gas_limit=int(raw.get("gasLimit", 0)),
        )

    async def close(self) -> None:
        await self._w3.provider.disconnect()
