from __future__ import annotations

import asyncio
from argparse import Namespace

from arc_governance.client import connect
from arc_governance.config import AppSettings
from arc_governance.domain.reward_summary import RewardSummary
from arc_governance.errors import ArcError
from arc_governance.types import CommandResult, CommandStatus


async def _fetch(
    settings: AppSettings, from_block: int, to_block: int | None, all_sources: bool
) -> list[RewardSummary]:
    context = await connect(settings)
    try:
        feed = context.redeemer().rewards_events(all_sources=all_sources)
        return await feed.get(from_block, to_block)
    finally:
        await context.close()


def run_reward_events(args: Namespace, settings: AppSettings) -> CommandResult:
    from_block = int(getattr(args, "from_block", 0) or 0)
    raw_to_block = getattr(args, "to_block", None)
    to_block = int(raw_to_block) if raw_to_block is not None else None
    if from_block < 0 or (to_block is not None and to_block < from_block):
        return CommandResult(
            command="reward-events",
            status=CommandStatus.FAILED,
            details={"error": "block range must be non-negative and ascending"},
        )

    all_sources = bool(getattr(args, "all_sources", False))
    try:
        summaries = asyncio.run(_fetch(settings, from_block, to_block, all_sources))
    except (ArcError, ValueError) as exc:
        return CommandResult(
            command="reward-events",
            status=CommandStatus.FAILED,
            details={"error": str(exc)},
        )

    return CommandResult(
        command="reward-events",
        status=CommandStatus.OK,
        details={
            "from_block": from_block,
            "to_block": to_block,
            "all_sources": all_sources,
            "rewards": [summary.to_dict() for summary in summaries],
        },
    )
