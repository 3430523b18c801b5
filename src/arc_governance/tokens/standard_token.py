from __future__ import annotations

from arc_governance.ethereum.addresses import normalize_address
from arc_governance.ethereum.transport import ChainTransport, ContractRef
from arc_governance.observability.logging import get_logger
from arc_governance.tracking.transactions import (
    TrackingPayload,
    TransactionResult,
    TransactionTracker,
)
from arc_governance.types import Address
from arc_governance.voting.rules import ensure_positive_amount


class StandardToken:
    """ERC20 staking token; only what staking needs."""

    def __init__(
        self, transport: ChainTransport, tracker: TransactionTracker, address: Address
    ) -> None:
        self._transport = transport
        self._tracker = tracker
        self.contract = ContractRef(
            name="StandardToken", address=normalize_address(address, field_name="token address")
        )
        self._logger = get_logger("standard_token")

    @property
    def address(self) -> Address:
        return self.contract.address

    async def approve(
        self,
        spender: Address,
        amount: int,
        *,
        payload: TrackingPayload | None = None,
    ) -> TransactionResult:
        """Approve `spender`; pass `payload` to report under a parent operation."""
        spender = normalize_address(spender, field_name="spender")
        ensure_positive_amount(amount)
        self._logger.info(
            "contract_function_call", function="StandardToken.approve", spender=spender, amount=amount
        )
        args = [spender, amount]
        if payload is None:
            return await self._tracker.invoke(
                "StandardToken.approve",
                {"spender": spender, "amount": amount},
                self.contract,
                "approve",
                args,
            )
        return await self._tracker.send(payload, self.contract, "approve", args)

    async def balance_of(self, owner: Address) -> int:
        owner = normalize_address(owner, field_name="owner")
        return int(await self._transport.call(self.contract, "balanceOf", [owner]))

    async def allowance(self, owner: Address, spender: Address) -> int:
        owner = normalize_address(owner, field_name="owner")
        spender = normalize_address(spender, field_name="spender")
        return int(await self._transport.call(self.contract, "allowance", [owner, spender]))
