"""Command handlers for the arc-governance CLI."""

from arc_governance.commands.params_hash import run_params_hash
from arc_governance.commands.proposal_status import run_proposal_status
from arc_governance.commands.reward_events import run_reward_events

__all__ = [
    "run_params_hash",
    "run_proposal_status",
    "run_reward_events",
]
