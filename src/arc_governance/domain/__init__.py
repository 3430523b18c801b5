"""Domain records for Arc governance proposals, parameters and rewards."""

from arc_governance.domain.parameters import (
    GenesisProtocolParams,
    parameters_hash,
    validate_parameters,
)
from arc_governance.domain.proposal import (
    ChoiceRange,
    ExecutedProposal,
    Proposal,
    ProposalStatus,
    ScoreThresholdParams,
    StakerInfo,
    VoterInfo,
)
from arc_governance.domain.reward_summary import Redeemables, RewardSummary
from arc_governance.domain.status import BinaryVote, ExecutionState, ProposalState

__all__ = [
    "BinaryVote",
    "ChoiceRange",
    "ExecutedProposal",
    "ExecutionState",
    "GenesisProtocolParams",
    "Proposal",
    "ProposalState",
    "ProposalStatus",
    "Redeemables",
    "RewardSummary",
    "ScoreThresholdParams",
    "StakerInfo",
    "VoterInfo",
    "parameters_hash",
    "validate_parameters",
]
