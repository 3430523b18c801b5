from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass

from arc_governance.client import ArcContext, connect
from arc_governance.config import get_settings
from arc_governance.domain.reward_summary import RewardSummary
from arc_governance.observability.logging import configure_logging, get_logger


@dataclass(slots=True)
class RewardWorker:
    """Follows the reward-events feed and logs one line per redemption."""

    context: ArcContext
    from_block: int = 0
    all_sources: bool = False

    def log_summary(self, summary: RewardSummary) -> None:
        logger = get_logger("reward_worker")
        logger.info("reward_redeemed", **summary.to_dict())

    async def run_once(self, to_block: int | None = None) -> int:
        feed = self.context.redeemer().rewards_events(all_sources=self.all_sources)
        summaries = await feed.get(self.from_block, to_block)
        for summary in summaries:
            self.log_summary(summary)
        return len(summaries)

    async def run_forever(self) -> None:
        feed = self.context.redeemer().rewards_events(all_sources=self.all_sources)
        async with feed.get_then_watch(self.from_block) as subscription:
            async for summary in subscription:
                self.log_summary(summary)


def _from_block_from_env() -> int:
    raw_block = os.environ.get("REWARD_WORKER_FROM_BLOCK", "0").strip()
    try:
        block = int(raw_block)
    except ValueError:
        return 0

    if block < 0:
        return 0
    return block


def _all_sources_from_env() -> bool:
    raw_flag = os.environ.get("REWARD_WORKER_ALL_SOURCES", "").strip().lower()
    return raw_flag in {"1", "true", "yes", "on"}


async def run_worker() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    context = await connect(settings)
    worker = RewardWorker(
        context=context,
        from_block=_from_block_from_env(),
        all_sources=_all_sources_from_env(),
    )
    try:
        await worker.run_forever()
    finally:
        await context.close()


if __name__ == "__main__":
    asyncio.run(run_worker())
