from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

from arc_governance.domain.status import ExecutionState, ProposalState
from arc_governance.types import Address, Hash, JsonDict


@dataclass(slots=True, frozen=True)
class Proposal:
    proposal_id: Hash
    avatar_address: Address
    proposer: Address
    num_of_choices: int
    executable: Address
    submitted_time: int
    boosted_phase_time: int
    current_boosted_vote_period_limit: int
    params_hash: Hash
    state: ProposalState
    winning_vote: int
    voters_stakes: int
    dao_bounty_remain: int

    @classmethod
    def from_contract_tuple(cls, proposal_id: Hash, values: Sequence[Any]) -> Proposal:
        (
            avatar,
            num_of_choices,
            executable,
            voters_stakes,
            submitted_time,
            boosted_phase_time,
            state,
            winning_vote,
            proposer,
            current_boosted_vote_period_limit,
            params_hash,
            dao_bounty_remain,
        ) = values
        return cls(
            proposal_id=proposal_id,
            avatar_address=str(avatar),
            proposer=str(proposer),
            num_of_choices=int(num_of_choices),
            executable=str(executable),
            submitted_time=int(submitted_time),
            boosted_phase_time=int(boosted_phase_time),
            current_boosted_vote_period_limit=int(current_boosted_vote_period_limit),
            params_hash=str(params_hash),
            state=ProposalState(int(state)),
            winning_vote=int(winning_vote),
            voters_stakes=int(voters_stakes),
            dao_bounty_remain=int(dao_bounty_remain),
        )

    @property
    def boosted_deadline(self) -> int:
        return self.boosted_phase_time + self.current_boosted_vote_period_limit

    def to_dict(self) -> JsonDict:
        payload = asdict(self)
        payload["state"] = self.state.name
        return payload


@dataclass(slots=True, frozen=True)
class ExecutedProposal:
    proposal: Proposal
    decision: int
    total_reputation: int
    execution_state: ExecutionState


@dataclass(slots=True, frozen=True)
class ProposalStatus:
    pre_boosted_votes_yes: int
    pre_boosted_votes_no: int
    total_staker_stakes: int
    total_staked: int
    stakes_yes: int
    stakes_no: int

    @classmethod
    def from_contract_tuple(cls, values: Sequence[Any]) -> ProposalStatus:
        return cls(*(int(value) for value in values[:6]))

    def to_dict(self) -> JsonDict:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class VoterInfo:
    vote: int
    reputation: int


@dataclass(slots=True, frozen=True)
class StakerInfo:
    vote: int
    stake: int


@dataclass(slots=True, frozen=True)
class ScoreThresholdParams:
    threshold_const_a: int
    threshold_const_b: int


@dataclass(slots=True, frozen=True)
class ChoiceRange:
    minimum: int
    maximum: int

