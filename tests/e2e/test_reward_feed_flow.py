from __future__ import annotations

import asyncio

from conftest import AVATAR, BENEFICIARY, EXECUTABLE, PROPOSAL_ID, SENDER, STAKING_TOKEN, FakeChain

from arc_governance.client import connect
from arc_governance.config import AppSettings
from arc_governance.domain.parameters import GenesisProtocolParams
from arc_governance.domain.status import ExecutionState, ProposalState
from arc_governance.voting.lifecycle import ProposalLifecycle

PARAMS = GenesisProtocolParams(
    pre_boosted_vote_required_percentage=50,
    boosted_vote_period_limit=600,
    threshold_const_a=100,
    threshold_const_b=3,
    quiet_ending_period=60,
)


def _simulate_genesis_protocol(chain: FakeChain) -> ProposalLifecycle:
    lifecycle = ProposalLifecycle(params=PARAMS, total_reputation=1_000, submitted_time=0)
    clock = iter(range(10, 10_000, 10))

    chain.set_call("GenesisProtocol", "getAllowedRangeOfChoices", (1, 2))
    chain.set_call("GenesisProtocol", "getNumberOfChoices", lambda _: lifecycle.num_of_choices)
    chain.set_call("GenesisProtocol", "state", lambda _: int(lifecycle.state))
    chain.set_call("GenesisProtocol", "stakingToken", STAKING_TOKEN)

    def on_propose(tx_hash: str, args: list[object]) -> None:
        chain.emit(
            "GenesisProtocol",
            "NewProposal",
            {"_proposalId": PROPOSAL_ID, "_avatar": AVATAR, "_numOfChoices": args[0]},
            tx_hash,
        )

    def on_stake(tx_hash: str, args: list[object]) -> None:
        lifecycle.stake(SENDER, int(args[1]), int(args[2]), now=next(clock))

    def on_vote(tx_hash: str, args: list[object]) -> None:
        lifecycle.vote(SENDER, int(args[1]), 600, now=next(clock))
        if lifecycle.state == ProposalState.EXECUTED:
            chain.emit(
                "GenesisProtocol",
                "GPExecuteProposal",
                {"_proposalId": PROPOSAL_ID, "_executionState": int(lifecycle.execution_state)},
                tx_hash,
            )

    def on_redeem(tx_hash: str, args: list[object]) -> None:
        rewards = {"_proposalId": args[0], "_beneficiary": args[2]}
        chain.emit("GenesisProtocol", "Redeem", {**rewards, "_amount": 50}, tx_hash)
        chain.emit("GenesisProtocol", "RedeemReputation", {**rewards, "_amount": 7}, tx_hash)
        chain.emit("ContributionReward", "RedeemReputation", {**rewards, "_amount": 3}, tx_hash)

    chain.hooks.update(propose=on_propose, stake=on_stake, vote=on_vote, redeem=on_redeem)
    return lifecycle


def test_proposal_to_reward_summary(chain: FakeChain) -> None:
    lifecycle = _simulate_genesis_protocol(chain)
    mined: list[str] = []

    async def scenario() -> None:
        context = await connect(
            AppSettings(event_poll_interval_seconds=0.01), transport=chain, resolver=chain
        )
        context.bus.subscribe("TxTracking", lambda topic, _: mined.append(topic))
        genesis_protocol = context.genesis_protocol()
        redeemer = context.redeemer()

        proposal = await genesis_protocol.propose(avatar=AVATAR, executable=EXECUTABLE)
        proposal_id = await proposal.get_proposal_id()
        assert proposal_id == PROPOSAL_ID

        await (await genesis_protocol.stake(proposal_id, 1, 100)).wait_mined()
        assert lifecycle.state == ProposalState.BOOSTED

        await (await genesis_protocol.vote(proposal_id, 1)).wait_mined()
        assert await genesis_protocol.get_state(proposal_id) == ProposalState.EXECUTED
        assert (
            await genesis_protocol.get_proposal_execution_state(proposal_id)
            == ExecutionState.BOOSTED_BAR_CROSSED
        )

        async with redeemer.rewards_events().watch() as live:
            await asyncio.sleep(0.05)
            redemption = await redeemer.redeem(proposal_id, AVATAR, BENEFICIARY)
            await redemption.wait_mined()
            streamed = await live.next(timeout=1)

        history = await redeemer.rewards_events().get()
        assert history == [streamed]
        summary = history[0]
        assert summary.transaction_hash == redemption.tx_hash
        assert summary.proposal_id == PROPOSAL_ID
        assert summary.reward_genesis_protocol_tokens == 50
        assert summary.reward_genesis_protocol_reputation == 7
        assert summary.reward_contribution_reputation == 3
        assert summary.reward_contribution_ether == 0
        assert summary.beneficiary_genesis_protocol == BENEFICIARY
        assert summary.beneficiary_contribution_reward == BENEFICIARY

    asyncio.run(scenario())

    assert [topic for topic in mined if topic.endswith(".mined")] == [
        "TxTracking.GenesisProtocol.propose.mined",
        "TxTracking.GenesisProtocol.stake.mined",
        "TxTracking.GenesisProtocol.stake.mined",
        "TxTracking.GenesisProtocol.vote.mined",
        "TxTracking.Redeemer.redeem.mined",
    ]
