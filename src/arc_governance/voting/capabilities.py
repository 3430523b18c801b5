from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from arc_governance.domain.status import ProposalState
from arc_governance.types import Address, Hash

if TYPE_CHECKING:
    from arc_governance.tracking.transactions import TransactionResult


@runtime_checkable
class VotingMachine(Protocol):
    async def vote(self, proposal_id: Hash, vote: int) -> TransactionResult: ...

    async def execute(self, proposal_id: Hash) -> TransactionResult: ...

    async def get_state(self, proposal_id: Hash) -> ProposalState: ...

    async def get_number_of_choices(self, proposal_id: Hash) -> int: ...

    async def cancel_proposal(self, proposal_id: Hash) -> TransactionResult: ...

    async def owner_vote(self, proposal_id: Hash, vote: int, voter: Address) -> TransactionResult: ...

    async def cancel_vote(self, proposal_id: Hash) -> TransactionResult: ...


@runtime_checkable
class Redeemable(Protocol):
    async def redeem(self, proposal_id: Hash, beneficiary: Address) -> TransactionResult: ...
