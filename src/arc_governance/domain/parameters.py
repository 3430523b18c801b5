"""GenesisProtocol voting parameters: defaults, bounds and the on-chain hash."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import astuple, dataclass, fields

from web3 import Web3

from arc_governance.errors import ConfigurationError, ParameterBoundError
from arc_governance.types import Hash

WEI_PER_ETHER = 10**18
MAX_ETH_VALUE = 10**26
MAX_REWARD_CONST = 100_000_000
PARAMETER_COUNT = 14


@dataclass(slots=True, frozen=True)
class GenesisProtocolParams:
    # Field order is the on-chain uint256[14] order.
    pre_boosted_vote_required_percentage: int = 50
    pre_boosted_vote_period_limit: int = 1_814_400
    boosted_vote_period_limit: int = 259_200
    threshold_const_a: int = 7 * WEI_PER_ETHER
    threshold_const_b: int = 3
    minimum_staking_fee: int = 0
    quiet_ending_period: int = 86_400
    proposing_rep_reward_const_a: int = 5
    proposing_rep_reward_const_b: int = 5
    staker_fee_ratio_for_voters: int = 50
    voters_reputation_loss_ratio: int = 1
    voters_gain_rep_ratio_from_lost_rep: int = 80
    dao_bounty_const: int = 75
    dao_bounty_limit: int = 100 * WEI_PER_ETHER

    def as_tuple(self) -> tuple[int, ...]:
        return tuple(int(value) for value in astuple(self))

    @classmethod
    def from_sequence(cls, values: Sequence[int]) -> GenesisProtocolParams:
        if len(values) != PARAMETER_COUNT:
            raise ConfigurationError(
                f"expected {PARAMETER_COUNT} parameter values, got {len(values)}"
            )
        return cls(*(int(value) for value in values))

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(item.name for item in fields(cls))


def _check(condition: bool, field: str, bound: str) -> None:
    if not condition:
        raise ParameterBoundError(field, bound)


def validate_parameters(params: GenesisProtocolParams) -> GenesisProtocolParams:
    _check(
        0 <= params.minimum_staking_fee <= MAX_ETH_VALUE,
        "minimum_staking_fee",
        f"between 0 and {MAX_ETH_VALUE}",
    )
    _check(
        0 <= params.proposing_rep_reward_const_a <= MAX_REWARD_CONST,
        "proposing_rep_reward_const_a",
        f"between 0 and {MAX_REWARD_CONST}",
    )
    _check(
        0 <= params.proposing_rep_reward_const_b <= MAX_REWARD_CONST,
        "proposing_rep_reward_const_b",
        f"between 0 and {MAX_REWARD_CONST}",
    )
    _check(
        0 <= params.threshold_const_a <= MAX_ETH_VALUE,
        "threshold_const_a",
        f"between 0 and {MAX_ETH_VALUE}",
    )
    _check(
        0 < params.threshold_const_b <= MAX_REWARD_CONST,
        "threshold_const_b",
        f"greater than 0 and at most {MAX_REWARD_CONST}",
    )
    _check(
        0 < params.pre_boosted_vote_required_percentage <= 100,
        "pre_boosted_vote_required_percentage",
        "greater than 0 and at most 100",
    )
    _check(
        0 <= params.staker_fee_ratio_for_voters <= 100,
        "staker_fee_ratio_for_voters",
        "between 0 and 100",
    )
    _check(
        0 <= params.voters_gain_rep_ratio_from_lost_rep <= 100,
        "voters_gain_rep_ratio_from_lost_rep",
        "between 0 and 100",
    )
    _check(
        0 <= params.voters_reputation_loss_ratio <= 100,
        "voters_reputation_loss_ratio",
        "between 0 and 100",
    )
    ratio = params.staker_fee_ratio_for_voters
    _check(
        ratio < params.dao_bounty_const < 2 * ratio,
        "dao_bounty_const",
        f"greater than {ratio} and less than {2 * ratio}",
    )
    _check(params.dao_bounty_limit >= 0, "dao_bounty_limit", "at least 0")
    return params


def parameters_hash(params: GenesisProtocolParams) -> Hash:
    """keccak256 of the 14 values packed as consecutive uint256 words."""
    return Web3.to_hex(
        Web3.solidity_keccak(["uint256"] * PARAMETER_COUNT, list(params.as_tuple()))
    )
