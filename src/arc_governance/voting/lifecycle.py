"""Local model of a GenesisProtocol proposal's life.

`ProposalLifecycle` replays votes, stakes and execute calls against the same
rules the contract applies, so callers can predict phase transitions and
deadlines (including quiet-ending extensions) without touching the chain.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from arc_governance.domain.parameters import GenesisProtocolParams
from arc_governance.domain.proposal import ProposalStatus
from arc_governance.domain.status import (
    BinaryVote,
    ExecutionState,
    ProposalState,
    is_terminal_state,
)
from arc_governance.errors import InvalidStateError, ValidationError
from arc_governance.types import Address
from arc_governance.voting.rules import (
    compute_score,
    compute_threshold,
    default_winning_vote,
    ensure_choice,
    ensure_positive_amount,
    ensure_votable,
    in_quiet_ending_window,
    is_decisive,
    should_boost,
)


@dataclass(slots=True, frozen=True)
class VoteRecord:
    choice: int
    reputation: int


@dataclass(slots=True, frozen=True)
class StakeRecord:
    choice: int
    amount: int


@dataclass(slots=True)
class ProposalLifecycle:
    params: GenesisProtocolParams
    total_reputation: int
    submitted_time: int
    num_of_choices: int = 2
    boosted_proposals_count: int = 0
    state: ProposalState = ProposalState.PRE_BOOSTED
    winning_vote: int = field(default_factory=default_winning_vote)
    execution_state: ExecutionState = ExecutionState.NONE
    boosted_phase_time: int = 0
    current_boosted_vote_period_limit: int = 0
    voters_stakes: int = 0
    total_staker_stakes: int = 0
    total_staked: int = 0
    votes: dict[Address, VoteRecord] = field(default_factory=dict)
    stakes: dict[Address, StakeRecord] = field(default_factory=dict)
    _tally: defaultdict[int, int] = field(default_factory=lambda: defaultdict(int))
    _pre_boosted_tally: defaultdict[int, int] = field(default_factory=lambda: defaultdict(int))
    _stakes_by_choice: defaultdict[int, int] = field(default_factory=lambda: defaultdict(int))

    def __post_init__(self) -> None:
        if self.current_boosted_vote_period_limit == 0:
            self.current_boosted_vote_period_limit = self.params.boosted_vote_period_limit

    @property
    def deadline(self) -> int:
        if self.state in (ProposalState.BOOSTED, ProposalState.QUIET_ENDING_PERIOD):
            return self.boosted_phase_time + self.current_boosted_vote_period_limit
        return self.submitted_time + self.params.pre_boosted_vote_period_limit

    @property
    def score(self) -> int:
        return compute_score(
            self._stakes_by_choice[BinaryVote.YES], self._stakes_by_choice[BinaryVote.NO]
        )

    @property
    def threshold(self) -> int:
        return compute_threshold(
            self.params.threshold_const_a,
            self.params.threshold_const_b,
            self.boosted_proposals_count,
        )

    def votes_for(self, choice: int) -> int:
        return self._tally[choice]

    def status(self) -> ProposalStatus:
        return ProposalStatus(
            pre_boosted_votes_yes=self._pre_boosted_tally[BinaryVote.YES],
            pre_boosted_votes_no=self._pre_boosted_tally[BinaryVote.NO],
            total_staker_stakes=self.total_staker_stakes,
            total_staked=self.total_staked,
            stakes_yes=self._stakes_by_choice[BinaryVote.YES],
            stakes_no=self._stakes_by_choice[BinaryVote.NO],
        )

    def vote(self, voter: Address, choice: int, reputation: int, now: int) -> bool:
        """Record a vote; returns True when the proposal executed as a result."""
        ensure_choice(choice, self.num_of_choices)
        ensure_positive_amount(reputation, field_name="reputation")
        ensure_votable(self.state)
        if self.execute(now):
            return True

        previous = self.votes.get(voter)
        if previous is not None:
            self._tally[previous.choice] -= previous.reputation
            if self.state == ProposalState.PRE_BOOSTED:
                self._pre_boosted_tally[previous.choice] -= previous.reputation
        self.votes[voter] = VoteRecord(choice=choice, reputation=reputation)
        self._tally[choice] += reputation
        if self.state == ProposalState.PRE_BOOSTED:
            self._pre_boosted_tally[choice] += reputation

        leader = self._leading_choice() if previous is not None else choice
        if leader != self.winning_vote and self._tally[leader] > self._tally[self.winning_vote]:
            self._flip_winning_vote(leader, now)
        return self.execute(now)

    def _leading_choice(self) -> int:
        # ties keep the lower choice
        return max(range(1, self.num_of_choices + 1), key=lambda choice: (self._tally[choice], -choice))

    def _flip_winning_vote(self, choice: int, now: int) -> None:
        self.winning_vote = choice
        if self.state not in (ProposalState.BOOSTED, ProposalState.QUIET_ENDING_PERIOD):
            return
        if in_quiet_ending_window(now, self.deadline, self.params.quiet_ending_period):
            self.boosted_phase_time = now
            self.current_boosted_vote_period_limit = self.params.quiet_ending_period
            self.state = ProposalState.QUIET_ENDING_PERIOD

    def stake(self, staker: Address, choice: int, amount: int, now: int) -> bool:
        """Record a stake; returns True when the proposal executed as a result."""
        ensure_positive_amount(amount)
        if amount < self.params.minimum_staking_fee:
            raise ValidationError(
                f"amount must be at least the minimum staking fee {self.params.minimum_staking_fee}"
            )
        ensure_choice(choice, self.num_of_choices, allow_abstain=False)
        ensure_votable(self.state)
        if self.execute(now):
            return True
        if self.state != ProposalState.PRE_BOOSTED:
            raise InvalidStateError(
                f"stakes are only accepted while pre-boosted. Current state: {self.state.name}"
            )

        previous = self.stakes.get(staker)
        if previous is not None and previous.choice != choice:
            raise ValidationError(
                f"staker already staked on choice {previous.choice} and cannot switch to {choice}"
            )

        fee = amount * self.params.staker_fee_ratio_for_voters // 100
        net = amount - fee
        self.voters_stakes += fee
        self.total_staker_stakes += net
        self.total_staked += amount
        self._stakes_by_choice[choice] += amount
        self.stakes[staker] = StakeRecord(
            choice=choice, amount=(previous.amount if previous else 0) + net
        )
        return self.execute(now)

    def execute(self, now: int) -> bool:
        if is_terminal_state(self.state):
            return False

        if is_decisive(self._tally[self.winning_vote], self.total_reputation, self.params):
            self._finish(
                ProposalState.EXECUTED,
                ExecutionState.PRE_BOOSTED_BAR_CROSSED
                if self.state == ProposalState.PRE_BOOSTED
                else ExecutionState.BOOSTED_BAR_CROSSED,
            )
            return True

        if self.state == ProposalState.PRE_BOOSTED:
            if now - self.submitted_time >= self.params.pre_boosted_vote_period_limit:
                self.winning_vote = int(BinaryVote.NO)
                self._finish(ProposalState.CLOSED, ExecutionState.PRE_BOOSTED_TIME_OUT)
                return True
            if should_boost(self.score, self.threshold):
                self.state = ProposalState.BOOSTED
                self.boosted_phase_time = now
                self.current_boosted_vote_period_limit = self.params.boosted_vote_period_limit
            return False

        if now - self.boosted_phase_time >= self.current_boosted_vote_period_limit:
            self._finish(ProposalState.EXECUTED, ExecutionState.BOOSTED_TIME_OUT)
            return True
        return False

    def _finish(self, state: ProposalState, execution_state: ExecutionState) -> None:
        self.state = state
        self.execution_state = execution_state
