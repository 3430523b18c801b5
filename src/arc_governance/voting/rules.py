"""Validation rules and arithmetic shared by every voting-machine binding.

These mirror the GenesisProtocol contract's observable behaviour so that a
call the contract would revert is rejected before it costs gas.
"""

from __future__ import annotations

from decimal import Decimal, localcontext

from arc_governance.domain.parameters import GenesisProtocolParams
from arc_governance.domain.status import (
    BinaryVote,
    ProposalState,
    is_terminal_state,
    is_votable_state,
)
from arc_governance.errors import InvalidStateError, ValidationError
from arc_governance.ethereum.addresses import normalize_hash
from arc_governance.types import Hash

MAX_THRESHOLD_EXPONENT = Decimal(100)


def ensure_proposal_id(proposal_id: str) -> Hash:
    return normalize_hash(proposal_id, field_name="proposal_id")


def ensure_choice(choice: int, num_of_choices: int, *, allow_abstain: bool = True) -> int:
    if isinstance(choice, bool) or not isinstance(choice, int):
        raise ValidationError("vote must be an integer")
    lowest = 0 if allow_abstain else 1
    if choice < lowest or choice > num_of_choices:
        raise ValidationError(f"vote must be between {lowest} and {num_of_choices}, got {choice}")
    return choice


def ensure_positive_amount(amount: int, *, field_name: str = "amount") -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{field_name} must be an integer")
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount


def ensure_votable(state: ProposalState) -> ProposalState:
    if not is_votable_state(state):
        raise InvalidStateError(f"proposal is not votable. Current state: {state.name}")
    return state


def ensure_redeemable(state: ProposalState) -> ProposalState:
    if not is_terminal_state(state):
        raise InvalidStateError(
            "cannot redeem unless proposal state is either executed or closed. "
            f"Current state: {state.name}"
        )
    return state


def compute_threshold(threshold_const_a: int, threshold_const_b: int, boosted_count: int) -> int:
    """const_a * 2 ** (boosted_count / const_b), truncated to wei."""
    if threshold_const_b <= 0:
        raise ValidationError("threshold_const_b must be greater than 0")
    with localcontext() as ctx:
        ctx.prec = 80
        exponent = min(Decimal(boosted_count) / Decimal(threshold_const_b), MAX_THRESHOLD_EXPONENT)
        return int(Decimal(threshold_const_a) * (Decimal(2) ** exponent))


def compute_score(stakes_yes: int, stakes_no: int) -> int:
    return stakes_yes - stakes_no


def should_boost(score: int, threshold: int) -> bool:
    return score >= threshold


def decisive_reputation(total_reputation: int, params: GenesisProtocolParams) -> int:
    return total_reputation * params.pre_boosted_vote_required_percentage // 100


def is_decisive(votes_for_choice: int, total_reputation: int, params: GenesisProtocolParams) -> bool:
    return votes_for_choice > decisive_reputation(total_reputation, params)


def in_quiet_ending_window(now: int, deadline: int, quiet_ending_period: int) -> bool:
    return deadline - quiet_ending_period <= now


def default_winning_vote() -> int:
    return int(BinaryVote.NO)
