"""Reward redemption through the Redeemer contract and the reward-events feed.

A single `Redeemer.redeem` pays out GenesisProtocol rewards and
ContributionReward rewards in one transaction. The reward feed correlates
the redemption events of both contracts back into one `RewardSummary` per
transaction.
"""

from __future__ import annotations

from collections.abc import Iterable

from arc_governance.domain.reward_summary import (
    CONTRIBUTION_REWARD_LABELS,
    GENESIS_PROTOCOL_REWARD_LABELS,
    Redeemables,
    RewardSummary,
)
from arc_governance.ethereum.addresses import normalize_address, same_address
from arc_governance.ethereum.registry import ContractRegistry
from arc_governance.ethereum.transport import ChainTransport
from arc_governance.events.correlator import AggregatedEvent, EventCorrelator, EventSpecifier
from arc_governance.events.feeds import EventFeed
from arc_governance.observability.logging import get_logger
from arc_governance.tracking.transactions import TransactionResult, TransactionTracker
from arc_governance.types import Address, Hash
from arc_governance.voting.rules import ensure_proposal_id

REWARD_EVENT_SPECIFIERS: tuple[EventSpecifier, ...] = (
    EventSpecifier("GenesisProtocol", "Redeem", "reward_genesis_protocol_tokens"),
    EventSpecifier("GenesisProtocol", "RedeemReputation", "reward_genesis_protocol_reputation"),
    EventSpecifier("GenesisProtocol", "RedeemDaoBounty", "bounty_genesis_protocol_dao"),
    EventSpecifier("ContributionReward", "RedeemReputation", "reward_contribution_reputation"),
    EventSpecifier("ContributionReward", "RedeemEther", "reward_contribution_ether"),
    EventSpecifier("ContributionReward", "RedeemNativeToken", "reward_contribution_native_token"),
    EventSpecifier(
        "ContributionReward", "RedeemExternalToken", "reward_contribution_external_token"
    ),
)


def _first_beneficiary(aggregate: AggregatedEvent, labels: Iterable[str]) -> Address | None:
    for label in labels:
        entry = aggregate.events.get(label)
        if entry is not None:
            return str(entry.args["_beneficiary"])
    return None


def summarize_rewards(aggregate: AggregatedEvent) -> RewardSummary:
    if not aggregate.events:
        raise ValueError("cannot summarize a transaction without reward events")
    first = next(iter(aggregate.events.values()))
    amounts = {label: int(entry.args["_amount"]) for label, entry in aggregate.events.items()}
    return RewardSummary(
        proposal_id=str(first.args["_proposalId"]),
        transaction_hash=aggregate.transaction_hash,
        block_number=aggregate.block_number,
        beneficiary_genesis_protocol=_first_beneficiary(aggregate, GENESIS_PROTOCOL_REWARD_LABELS),
        beneficiary_contribution_reward=_first_beneficiary(aggregate, CONTRIBUTION_REWARD_LABELS),
        **amounts,
    )


class Redeemer:
    def __init__(
        self,
        transport: ChainTransport,
        registry: ContractRegistry,
        tracker: TransactionTracker,
        *,
        poll_interval_seconds: float = 2.0,
    ) -> None:
        self._transport = transport
        self._registry = registry
        self._tracker = tracker
        self._poll_interval_seconds = poll_interval_seconds
        self.contract = registry.require("Redeemer")
        self._logger = get_logger("redeemer")

    @property
    def address(self) -> Address:
        return self.contract.address

    async def redeem(
        self, proposal_id: Hash, avatar: Address, beneficiary: Address
    ) -> TransactionResult:
        proposal_id = ensure_proposal_id(proposal_id)
        avatar = normalize_address(avatar, field_name="avatar")
        beneficiary = normalize_address(beneficiary, field_name="beneficiary")
        options = {"proposal_id": proposal_id, "avatar": avatar, "beneficiary": beneficiary}
        self._logger.info("contract_function_call", function="Redeemer.redeem", **options)
        return await self._tracker.invoke(
            "Redeemer.redeem", options, self.contract, "redeem", [proposal_id, avatar, beneficiary]
        )

    async def redeemables(
        self, proposal_id: Hash, avatar: Address, beneficiary: Address
    ) -> Redeemables:
        """Dry-run `redeem` and report what it would pay right now."""
        proposal_id = ensure_proposal_id(proposal_id)
        avatar = normalize_address(avatar, field_name="avatar")
        beneficiary = normalize_address(beneficiary, field_name="beneficiary")
        self._logger.info(
            "contract_function_call",
            function="Redeemer.redeem.call",
            proposal_id=proposal_id,
            avatar=avatar,
            beneficiary=beneficiary,
        )
        gp_rewards, dao_bounty, executed, cr_results = await self._transport.call(
            self.contract, "redeem", [proposal_id, avatar, beneficiary]
        )
        return Redeemables(
            proposal_id=proposal_id,
            proposal_executed=bool(executed),
            staker_token_amount=int(gp_rewards[0]),
            staker_reputation_amount=int(gp_rewards[1]),
            voter_token_amount=int(gp_rewards[2]),
            voter_reputation_amount=int(gp_rewards[3]),
            proposer_reputation_amount=int(gp_rewards[4]),
            dao_staking_bounty_reward=int(dao_bounty[0]),
            dao_staking_bounty_potential_reward=int(dao_bounty[1]),
            contribution_reward_reputation=bool(cr_results[0]),
            contribution_reward_native_token=bool(cr_results[1]),
            contribution_reward_ether=bool(cr_results[2]),
            contribution_reward_external_token=bool(cr_results[3]),
        )

    def rewards_events(
        self,
        *,
        redeemer_address: Address | None = None,
        all_sources: bool = False,
    ) -> EventFeed[AggregatedEvent, RewardSummary]:
        """Reward summaries paid via the Redeemer, or via any contract with `all_sources`."""
        target = (
            normalize_address(redeemer_address, field_name="redeemer_address")
            if redeemer_address
            else self.address
        )
        correlator = EventCorrelator(
            self._transport,
            self._registry,
            REWARD_EVENT_SPECIFIERS,
            poll_interval_seconds=self._poll_interval_seconds,
        )

        async def to_summary(aggregate: AggregatedEvent) -> RewardSummary | None:
            if not all_sources and not same_address(aggregate.receipt.to_address, target):
                return None
            return summarize_rewards(aggregate)

        return EventFeed(correlator, to_summary, name="Redeemer.rewards_events")
