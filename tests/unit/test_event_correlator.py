from __future__ import annotations

import asyncio

import pytest
from conftest import BENEFICIARY, CONTRIBUTION_REWARD, PROPOSAL_ID, REDEEMER, FakeChain

from arc_governance.errors import AggregationError, ConfigurationError
from arc_governance.ethereum.registry import ContractRegistry
from arc_governance.events.correlator import EventCorrelator, EventSpecifier

SPECIFIERS = (
    EventSpecifier("GenesisProtocol", "Redeem", "gp_redeem"),
    EventSpecifier("ContributionReward", "RedeemEther", "cr_ether"),
)


def _redeem(chain: FakeChain, *, amount: int = 1) -> str:
    tx_hash = chain.mine(to_address=REDEEMER)
    chain.emit(
        "GenesisProtocol",
        "Redeem",
        {"_proposalId": PROPOSAL_ID, "_beneficiary": BENEFICIARY, "_amount": amount},
        tx_hash,
    )
    return tx_hash


def test_events_in_one_transaction_are_grouped(chain: FakeChain, registry: ContractRegistry) -> None:
    first = chain.mine(to_address=REDEEMER)
    chain.emit("ContributionReward", "RedeemEther", {"_amount": 7}, first)
    chain.emit("GenesisProtocol", "Redeem", {"_amount": 3}, first)
    second = _redeem(chain)
    correlator = EventCorrelator(chain, registry, SPECIFIERS)

    aggregates = asyncio.run(correlator.fetch())

    assert [aggregate.transaction_hash for aggregate in aggregates] == [first, second]
    assert aggregates[0].labels == ("gp_redeem", "cr_ether")
    assert aggregates[0].events["cr_ether"].args["_amount"] == 7
    assert aggregates[0].receipt.to_address == REDEEMER
    assert aggregates[1].labels == ("gp_redeem",)
    assert aggregates[0].block_number < aggregates[1].block_number


def test_first_occurrence_of_a_label_wins(chain: FakeChain, registry: ContractRegistry) -> None:
    tx_hash = chain.mine(to_address=REDEEMER)
    chain.emit("GenesisProtocol", "Redeem", {"_amount": 1}, tx_hash)
    chain.emit("GenesisProtocol", "Redeem", {"_amount": 2}, tx_hash)
    correlator = EventCorrelator(chain, registry, SPECIFIERS)

    (aggregate,) = asyncio.run(correlator.fetch())

    assert aggregate.events["gp_redeem"].args["_amount"] == 1
    assert len(aggregate.events) == 1


def test_block_range_limits_the_query(chain: FakeChain, registry: ContractRegistry) -> None:
    _redeem(chain)
    later = _redeem(chain)
    correlator = EventCorrelator(chain, registry, SPECIFIERS)
    later_block = chain.receipts[later].block_number

    aggregates = asyncio.run(correlator.fetch(from_block=later_block))

    assert [aggregate.transaction_hash for aggregate in aggregates] == [later]


def test_no_matching_events_gives_empty_list(chain: FakeChain, registry: ContractRegistry) -> None:
    correlator = EventCorrelator(chain, registry, SPECIFIERS)

    assert asyncio.run(correlator.fetch()) == []


@pytest.mark.parametrize(
    "specifiers",
    [
        (),
        (
            EventSpecifier("GenesisProtocol", "Redeem", "same"),
            EventSpecifier("ContributionReward", "RedeemEther", "same"),
        ),
    ],
)
def test_invalid_specifier_lists_are_rejected(
    chain: FakeChain, registry: ContractRegistry, specifiers: tuple[EventSpecifier, ...]
) -> None:
    with pytest.raises(ConfigurationError):
        EventCorrelator(chain, registry, specifiers)


def test_undeployed_source_is_a_configuration_error(chain: FakeChain) -> None:
    registry = ContractRegistry(addresses={"ContributionReward": CONTRIBUTION_REWARD})

    with pytest.raises(ConfigurationError, match="GenesisProtocol is not deployed"):
        EventCorrelator(chain, registry, SPECIFIERS)


def test_log_query_failure_surfaces_as_aggregation_error(
    chain: FakeChain, registry: ContractRegistry
) -> None:
    _redeem(chain)
    chain.log_query_errors.add(("ContributionReward", "RedeemEther"))
    correlator = EventCorrelator(chain, registry, SPECIFIERS)

    with pytest.raises(AggregationError, match="ContributionReward.RedeemEther"):
        asyncio.run(correlator.fetch())


def test_get_then_watch_delivers_history_then_live(
    chain: FakeChain, registry: ContractRegistry
) -> None:
    historic = _redeem(chain)

    async def scenario() -> list[str]:
        correlator = EventCorrelator(chain, registry, SPECIFIERS, poll_interval_seconds=0.01)
        async with correlator.get_then_watch() as subscription:
            seen = [(await subscription.next(timeout=1)).transaction_hash]
            await asyncio.sleep(0.05)
            live = _redeem(chain, amount=5)
            seen.append((await subscription.next(timeout=1)).transaction_hash)
            assert seen == [historic, live]
        return seen

    asyncio.run(scenario())


def test_get_then_watch_waits_for_a_future_start_block(
    chain: FakeChain, registry: ContractRegistry
) -> None:
    start = chain.block_number + 3

    async def scenario() -> None:
        correlator = EventCorrelator(chain, registry, SPECIFIERS, poll_interval_seconds=0.01)
        async with correlator.get_then_watch(start) as subscription:
            _redeem(chain)
            await asyncio.sleep(0.05)
            chain.mine()
            later = _redeem(chain)
            assert chain.receipts[later].block_number == start
            assert (await subscription.next(timeout=1)).transaction_hash == later

    asyncio.run(scenario())


def test_watch_skips_history(chain: FakeChain, registry: ContractRegistry) -> None:
    _redeem(chain)

    async def scenario() -> None:
        correlator = EventCorrelator(chain, registry, SPECIFIERS, poll_interval_seconds=0.01)
        subscription = correlator.watch()
        await asyncio.sleep(0.05)
        live = _redeem(chain)
        aggregate = await subscription.next(timeout=1)
        await subscription.close()
        assert aggregate.transaction_hash == live

    asyncio.run(scenario())


def test_failure_ends_only_the_failing_subscription(
    chain: FakeChain, registry: ContractRegistry
) -> None:
    async def scenario() -> None:
        failing = EventCorrelator(
            chain,
            registry,
            (EventSpecifier("ContributionReward", "RedeemEther", "cr_ether"),),
            poll_interval_seconds=0.01,
        )
        healthy = EventCorrelator(
            chain,
            registry,
            (EventSpecifier("GenesisProtocol", "Redeem", "gp_redeem"),),
            poll_interval_seconds=0.01,
        )
        broken = failing.watch()
        working = healthy.watch()
        await asyncio.sleep(0.05)
        chain.log_query_errors.add(("ContributionReward", "RedeemEther"))
        live = _redeem(chain)

        with pytest.raises(AggregationError):
            await broken.next(timeout=1)
        with pytest.raises(StopAsyncIteration):
            await broken.next(timeout=1)

        aggregate = await working.next(timeout=1)
        assert aggregate.transaction_hash == live
        await broken.close()
        await working.close()

    asyncio.run(scenario())


def test_close_is_idempotent_and_ends_iteration(
    chain: FakeChain, registry: ContractRegistry
) -> None:
    async def scenario() -> None:
        correlator = EventCorrelator(chain, registry, SPECIFIERS, poll_interval_seconds=0.01)
        subscription = correlator.watch()
        await subscription.close()
        await subscription.close()
        assert subscription.closed
        assert [aggregate async for aggregate in subscription] == []

    asyncio.run(scenario())
