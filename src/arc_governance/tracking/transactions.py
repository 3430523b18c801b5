"""Kickoff / mined / error notifications for every state-changing call.

Each logical operation gets one `TrackingPayload`. Operations made of several
transactions (stake with token auto-approval) declare how many mined
notifications to expect and route every transaction through the same payload.
Topics have the shape `TxTracking.<Contract>.<function>.<stage>`.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from arc_governance.ethereum.transport import ChainTransport, ContractRef, Receipt
from arc_governance.observability.logging import get_logger
from arc_governance.tracking.pubsub import Callback, EventBus, Subscription
from arc_governance.types import Hash, JsonDict

TOPIC_ROOT = "TxTracking"

T = TypeVar("T")


class TxStage(StrEnum):
    KICKOFF = "kickoff"
    MINED = "mined"
    ERROR = "error"


def tracking_topic(function_name: str, stage: TxStage) -> str:
    return f"{TOPIC_ROOT}.{function_name}.{stage.value}"


@dataclass(slots=True)
class TrackingPayload:
    function_name: str
    options: JsonDict = field(default_factory=dict)
    expected_count: int = 1
    tx_tracking_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    mined_count: int = 0
    error_count: int = 0

    @property
    def resolved_count(self) -> int:
        return self.mined_count + self.error_count

    @property
    def complete(self) -> bool:
        # a failed step means the remaining transactions are never sent
        return self.error_count > 0 or self.resolved_count >= self.expected_count


@dataclass(slots=True, frozen=True)
class TransactionEventInfo:
    payload: TrackingPayload
    options: JsonDict
    tx_hash: Hash | None = None
    receipt: Receipt | None = None
    error: BaseException | None = None


class TransactionResult:
    def __init__(self, tx_hash: Hash, receipt_task: asyncio.Task[Receipt]) -> None:
        self.tx_hash = tx_hash
        self.receipt_task = receipt_task

    @property
    def mined(self) -> bool:
        return self.receipt_task.done()

    async def wait_mined(self) -> Receipt:
        return await asyncio.shield(self.receipt_task)


class TransactionDataResult(TransactionResult, Generic[T]):
    """A transaction whose interesting output is known before it is mined."""

    def __init__(self, tx_hash: Hash, receipt_task: asyncio.Task[Receipt], value: T) -> None:
        super().__init__(tx_hash, receipt_task)
        self.value = value


class TransactionTracker:
    def __init__(self, transport: ChainTransport, bus: EventBus | None = None) -> None:
        self._transport = transport
        self._bus = bus if bus is not None else EventBus()
        self._pending: set[asyncio.Task[Receipt]] = set()
        self._logger = get_logger("transaction_tracker")

    @property
    def bus(self) -> EventBus:
        return self._bus

    def subscribe(self, topics: str | Iterable[str], callback: Callback) -> Subscription:
        return self._bus.subscribe(topics, callback)

    def kickoff(
        self,
        function_name: str,
        options: JsonDict | None = None,
        expected_count: int = 1,
    ) -> TrackingPayload:
        if expected_count < 1:
            raise ValueError("expected_count must be at least 1")
        payload = TrackingPayload(
            function_name=function_name,
            options=dict(options or {}),
            expected_count=expected_count,
        )
        self._logger.info(
            "transaction_kickoff",
            function_name=function_name,
            tx_tracking_id=payload.tx_tracking_id,
            expected_count=expected_count,
        )
        self._publish(payload, TxStage.KICKOFF)
        return payload

    async def send(
        self,
        payload: TrackingPayload,
        contract: ContractRef,
        method: str,
        args: Sequence[Any],
    ) -> TransactionResult:
        try:
            tx_hash = await self._transport.send_transaction(contract, method, args)
        except Exception as exc:
            payload.error_count += 1
            self._logger.warning(
                "transaction_submit_failed",
                function_name=payload.function_name,
                tx_tracking_id=payload.tx_tracking_id,
                contract=contract.name,
                method=method,
                error=str(exc),
            )
            self._publish(payload, TxStage.ERROR, error=exc)
            raise

        task = asyncio.create_task(self._await_receipt(payload, tx_hash))
        self._pending.add(task)
        task.add_done_callback(self._release)
        return TransactionResult(tx_hash, task)

    async def invoke(
        self,
        function_name: str,
        options: JsonDict,
        contract: ContractRef,
        method: str,
        args: Sequence[Any],
    ) -> TransactionResult:
        payload = self.kickoff(function_name, options)
        return await self.send(payload, contract, method, args)

    def fail(self, payload: TrackingPayload, exc: BaseException) -> None:
        """Report a failure that happened before a transaction could be sent."""
        payload.error_count += 1
        self._logger.warning(
            "transaction_aborted",
            function_name=payload.function_name,
            tx_tracking_id=payload.tx_tracking_id,
            error=str(exc),
        )
        self._publish(payload, TxStage.ERROR, error=exc)

    async def _await_receipt(self, payload: TrackingPayload, tx_hash: Hash) -> Receipt:
        try:
            receipt = await self._transport.wait_for_receipt(tx_hash)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            payload.error_count += 1
            self._logger.warning(
                "transaction_failed",
                function_name=payload.function_name,
                tx_tracking_id=payload.tx_tracking_id,
                tx_hash=tx_hash,
                error=str(exc),
            )
            self._publish(payload, TxStage.ERROR, tx_hash=tx_hash, error=exc)
            raise
        payload.mined_count += 1
        self._logger.info(
            "transaction_mined",
            function_name=payload.function_name,
            tx_tracking_id=payload.tx_tracking_id,
            tx_hash=tx_hash,
            block_number=receipt.block_number,
        )
        self._publish(payload, TxStage.MINED, tx_hash=tx_hash, receipt=receipt)
        return receipt

    def _release(self, task: asyncio.Task[Receipt]) -> None:
        self._pending.discard(task)
        if not task.cancelled():
            # already reported on the bus; mark retrieved for callers that never wait
            task.exception()

    def _publish(
        self,
        payload: TrackingPayload,
        stage: TxStage,
        *,
        tx_hash: Hash | None = None,
        receipt: Receipt | None = None,
        error: BaseException | None = None,
    ) -> None:
        info = TransactionEventInfo(
            payload=payload,
            options=payload.options,
            tx_hash=tx_hash,
            receipt=receipt,
            error=error,
        )
        self._bus.publish(tracking_topic(payload.function_name, stage), info)
