from __future__ import annotations

from dataclasses import dataclass

from arc_governance.config import AppSettings
from arc_governance.ethereum.registry import ContractRegistry, SettingsAddressResolver
from arc_governance.ethereum.rpc_client import RpcClientFactory
from arc_governance.ethereum.transport import AddressResolver, ChainTransport
from arc_governance.rewards.redeemer import Redeemer
from arc_governance.tracking.pubsub import EventBus
from arc_governance.tracking.transactions import TransactionTracker
from arc_governance.voting.genesis_protocol import GenesisProtocol


@dataclass(slots=True, frozen=True)
class ArcContext:
    """Everything built once at start-up and passed to whoever needs it."""

    settings: AppSettings
    transport: ChainTransport
    registry: ContractRegistry
    tracker: TransactionTracker

    @property
    def bus(self) -> EventBus:
        return self.tracker.bus

    def genesis_protocol(self) -> GenesisProtocol:
        return GenesisProtocol(
            self.transport,
            self.registry,
            self.tracker,
            auto_approve_token_transfers=self.settings.auto_approve_token_transfers,
        )

    def redeemer(self) -> Redeemer:
        return Redeemer(
            self.transport,
            self.registry,
            self.tracker,
            poll_interval_seconds=self.settings.event_poll_interval_seconds,
        )

    async def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()


async def connect(
    settings: AppSettings,
    *,
    transport: ChainTransport | None = None,
    resolver: AddressResolver | None = None,
) -> ArcContext:
    transport = transport or RpcClientFactory(settings).create_transport()
    registry = await ContractRegistry.load(resolver or SettingsAddressResolver(settings))
    return ArcContext(
        settings=settings,
        transport=transport,
        registry=registry,
        tracker=TransactionTracker(transport),
    )
