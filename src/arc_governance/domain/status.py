from __future__ import annotations

from enum import IntEnum


class ProposalState(IntEnum):
    NONE = 0
    CLOSED = 1
    EXECUTED = 2
    PRE_BOOSTED = 3
    BOOSTED = 4
    QUIET_ENDING_PERIOD = 5


class ExecutionState(IntEnum):
    NONE = 0
    PRE_BOOSTED_TIME_OUT = 1
    PRE_BOOSTED_BAR_CROSSED = 2
    BOOSTED_TIME_OUT = 3
    BOOSTED_BAR_CROSSED = 4


class BinaryVote(IntEnum):
    ABSTAIN = 0
    YES = 1
    NO = 2


TERMINAL_STATES: frozenset[ProposalState] = frozenset(
    {
        ProposalState.EXECUTED,
        ProposalState.CLOSED,
    }
)

VOTABLE_STATES: frozenset[ProposalState] = frozenset(
    {
        ProposalState.PRE_BOOSTED,
        ProposalState.BOOSTED,
        ProposalState.QUIET_ENDING_PERIOD,
    }
)


def is_terminal_state(state: ProposalState) -> bool:
    return state in TERMINAL_STATES


def is_votable_state(state: ProposalState) -> bool:
    return state in VOTABLE_STATES
