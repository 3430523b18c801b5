from __future__ import annotations

from dataclasses import asdict, dataclass

from arc_governance.types import Address, Hash, JsonDict

GENESIS_PROTOCOL_REWARD_LABELS: tuple[str, ...] = (
    "reward_genesis_protocol_tokens",
    "reward_genesis_protocol_reputation",
    "bounty_genesis_protocol_dao",
)

CONTRIBUTION_REWARD_LABELS: tuple[str, ...] = (
    "reward_contribution_reputation",
    "reward_contribution_ether",
    "reward_contribution_native_token",
    "reward_contribution_external_token",
)


@dataclass(slots=True, frozen=True)
class RewardSummary:
    """Rewards paid out by one redeeming transaction. Absent categories are 0."""

    proposal_id: Hash
    transaction_hash: Hash
    block_number: int
    reward_genesis_protocol_tokens: int = 0
    reward_genesis_protocol_reputation: int = 0
    bounty_genesis_protocol_dao: int = 0
    reward_contribution_reputation: int = 0
    reward_contribution_ether: int = 0
    reward_contribution_native_token: int = 0
    reward_contribution_external_token: int = 0
    beneficiary_genesis_protocol: Address | None = None
    beneficiary_contribution_reward: Address | None = None

    def to_dict(self) -> JsonDict:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class Redeemables:
    """What `Redeemer.redeem` would pay if it were invoked now.

    GenesisProtocol rewards are amounts; ContributionReward entries only say
    whether that reward is currently redeemable.
    """

    proposal_id: Hash
    proposal_executed: bool
    staker_token_amount: int
    staker_reputation_amount: int
    voter_token_amount: int
    voter_reputation_amount: int
    proposer_reputation_amount: int
    dao_staking_bounty_reward: int
    dao_staking_bounty_potential_reward: int
    contribution_reward_reputation: bool
    contribution_reward_native_token: bool
    contribution_reward_ether: bool
    contribution_reward_external_token: bool

    def to_dict(self) -> JsonDict:
        return asdict(self)
