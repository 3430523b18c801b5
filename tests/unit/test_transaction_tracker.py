from __future__ import annotations

import asyncio
from typing import Any

import pytest
from conftest import GENESIS_PROTOCOL, FakeChain

from arc_governance.ethereum.transport import ContractRef, TransactionRevertedError
from arc_governance.tracking.pubsub import EventBus, topic_matches
from arc_governance.tracking.transactions import (
    TransactionTracker,
    TxStage,
    tracking_topic,
)

CONTRACT = ContractRef(name="GenesisProtocol", address=GENESIS_PROTOCOL)


def test_tracking_topic_layout() -> None:
    assert tracking_topic("GenesisProtocol.vote", TxStage.MINED) == "TxTracking.GenesisProtocol.vote.mined"


@pytest.mark.parametrize(
    ("pattern", "topic", "expected"),
    [
        ("TxTracking", "TxTracking.GenesisProtocol.vote.kickoff", True),
        ("TxTracking.GenesisProtocol", "TxTracking.GenesisProtocol.vote.mined", True),
        ("TxTracking.GenesisProtocol.vote", "TxTracking.GenesisProtocol.voteWithSpecifiedAmounts.mined", False),
        ("TxTracking.GenesisProtocol.vote.mined", "TxTracking.GenesisProtocol.vote.mined", True),
        ("TxTracking.Redeemer", "TxTracking.GenesisProtocol.redeem.mined", False),
    ],
)
def test_topic_matching_is_hierarchical(pattern: str, topic: str, expected: bool) -> None:
    assert topic_matches(pattern, topic) is expected


def test_unsubscribe_is_idempotent() -> None:
    bus = EventBus()
    received: list[str] = []
    subscription = bus.subscribe(["a.b", "c"], lambda topic, _: received.append(topic))

    assert bus.publish("a.b.c", None) == 1
    subscription.unsubscribe()
    subscription.unsubscribe()

    assert bus.publish("c", None) == 0
    assert received == ["a.b.c"]
    assert bus.subscriber_count() == 0


def test_subscribe_requires_a_topic() -> None:
    with pytest.raises(ValueError):
        EventBus().subscribe([], lambda topic, info: None)


def test_failing_subscriber_does_not_block_others() -> None:
    bus = EventBus()
    received: list[Any] = []

    def explode(topic: str, info: Any) -> None:
        raise RuntimeError("subscriber bug")

    bus.subscribe("TxTracking", explode)
    bus.subscribe("TxTracking", lambda topic, info: received.append(info))

    assert bus.publish("TxTracking.X.y.kickoff", "info") == 2
    assert received == ["info"]


def test_kickoff_requires_an_expected_transaction(chain: FakeChain) -> None:
    with pytest.raises(ValueError):
        TransactionTracker(chain).kickoff("GenesisProtocol.vote", expected_count=0)


def test_invoke_reports_kickoff_then_mined(chain: FakeChain) -> None:
    tracker = TransactionTracker(chain)
    events: list[tuple[str, Any]] = []
    tracker.subscribe("TxTracking.GenesisProtocol.execute", lambda topic, info: events.append((topic, info)))

    async def scenario() -> str:
        result = await tracker.invoke(
            "GenesisProtocol.execute", {"proposal_id": "0x01"}, CONTRACT, "execute", ["0x01"]
        )
        receipt = await result.wait_mined()
        assert result.mined
        return receipt.transaction_hash

    tx_hash = asyncio.run(scenario())

    assert [topic for topic, _ in events] == [
        "TxTracking.GenesisProtocol.execute.kickoff",
        "TxTracking.GenesisProtocol.execute.mined",
    ]
    kickoff, mined = (info for _, info in events)
    assert kickoff.tx_hash is None
    assert kickoff.options == {"proposal_id": "0x01"}
    assert mined.tx_hash == tx_hash
    assert mined.receipt.succeeded
    assert mined.payload.tx_tracking_id == kickoff.payload.tx_tracking_id
    assert mined.payload.complete


def test_submission_failure_publishes_error_and_reraises(chain: FakeChain) -> None:
    tracker = TransactionTracker(chain)
    chain.fail_sends.add("execute")
    events: list[tuple[str, Any]] = []
    tracker.subscribe("TxTracking", lambda topic, info: events.append((topic, info)))

    with pytest.raises(RuntimeError, match="rejected by node"):
        asyncio.run(tracker.invoke("GenesisProtocol.execute", {}, CONTRACT, "execute", ["0x01"]))

    assert [topic for topic, _ in events] == [
        "TxTracking.GenesisProtocol.execute.kickoff",
        "TxTracking.GenesisProtocol.execute.error",
    ]
    error_info = events[-1][1]
    assert isinstance(error_info.error, RuntimeError)
    assert error_info.payload.error_count == 1
    assert error_info.payload.complete


def test_revert_publishes_error_and_fails_wait(chain: FakeChain) -> None:
    tracker = TransactionTracker(chain)
    chain.revert_methods.add("execute")
    topics: list[str] = []
    tracker.subscribe("TxTracking", lambda topic, _: topics.append(topic))

    async def scenario() -> None:
        result = await tracker.invoke("GenesisProtocol.execute", {}, CONTRACT, "execute", ["0x01"])
        with pytest.raises(TransactionRevertedError):
            await result.wait_mined()

    asyncio.run(scenario())

    assert topics[-1] == "TxTracking.GenesisProtocol.execute.error"


def test_multi_transaction_payload_completes_after_all_mined(chain: FakeChain) -> None:
    tracker = TransactionTracker(chain)
    states: list[bool] = []
    tracker.subscribe(
        "TxTracking.GenesisProtocol.stake",
        lambda topic, info: states.append(info.payload.complete),
    )

    async def scenario() -> None:
        payload = tracker.kickoff("GenesisProtocol.stake", {}, expected_count=2)
        first = await tracker.send(payload, CONTRACT, "approve", [])
        await first.wait_mined()
        second = await tracker.send(payload, CONTRACT, "stake", [])
        await second.wait_mined()

    asyncio.run(scenario())

    assert states == [False, False, True]


def test_fail_reports_an_unsent_operation(chain: FakeChain) -> None:
    tracker = TransactionTracker(chain)
    events: list[tuple[str, Any]] = []
    tracker.subscribe("TxTracking", lambda topic, info: events.append((topic, info)))

    payload = tracker.kickoff("GenesisProtocol.stake", {}, expected_count=2)
    tracker.fail(payload, RuntimeError("lookup failed"))

    assert [topic for topic, _ in events][-1] == "TxTracking.GenesisProtocol.stake.error"
    assert events[-1][1].tx_hash is None
    assert payload.complete
    assert chain.sent == []
