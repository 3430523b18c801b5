from __future__ import annotations

import asyncio
from argparse import Namespace

from arc_governance.client import connect
from arc_governance.config import AppSettings
from arc_governance.errors import ArcError
from arc_governance.types import CommandResult, CommandStatus, JsonDict


async def _collect(proposal_id: str, settings: AppSettings) -> JsonDict:
    context = await connect(settings)
    try:
        genesis_protocol = context.genesis_protocol()
        proposal = await genesis_protocol.get_proposal(proposal_id)
        status = await genesis_protocol.get_proposal_status(proposal.proposal_id)
        execution_state = await genesis_protocol.get_proposal_execution_state(proposal.proposal_id)
        return {
            "proposal": proposal.to_dict(),
            "status": status.to_dict(),
            "score": await genesis_protocol.get_score(proposal.proposal_id),
            "should_boost": await genesis_protocol.should_boost(proposal.proposal_id),
            "execution_state": execution_state.name,
        }
    finally:
        await context.close()


def run_proposal_status(args: Namespace, settings: AppSettings) -> CommandResult:
    proposal_id = str(getattr(args, "proposal_id", "") or "").strip()
    if not proposal_id:
        return CommandResult(
            command="proposal-status",
            status=CommandStatus.FAILED,
            details={"error": "proposal_id is required"},
        )

    try:
        details = asyncio.run(_collect(proposal_id, settings))
    except (ArcError, ValueError) as exc:
        return CommandResult(
            command="proposal-status",
            status=CommandStatus.FAILED,
            details={"error": str(exc), "proposal_id": proposal_id},
        )

    return CommandResult(command="proposal-status", status=CommandStatus.OK, details=details)
