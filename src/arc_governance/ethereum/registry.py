from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from arc_governance.config import AppSettings
from arc_governance.errors import ConfigurationError, ValidationError
from arc_governance.ethereum.addresses import normalize_address, same_address
from arc_governance.ethereum.transport import AddressResolver, ContractRef
from arc_governance.observability.logging import get_logger
from arc_governance.types import Address

DEFAULT_CONTRACT_NAMES: tuple[str, ...] = ("GenesisProtocol", "ContributionReward", "Redeemer")


@dataclass(slots=True, frozen=True)
class ContractRegistry:
    """Read-only name -> deployed address table shared by every wrapper."""

    addresses: Mapping[str, Address] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        try:
            normalized = {
                name: normalize_address(address, field_name=f"{name} address")
                for name, address in self.addresses.items()
            }
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
        object.__setattr__(self, "addresses", MappingProxyType(normalized))

    @classmethod
    async def load(
        cls,
        resolver: AddressResolver,
        names: Iterable[str] = DEFAULT_CONTRACT_NAMES,
    ) -> ContractRegistry:
        logger = get_logger("contract_registry")
        resolved: dict[str, Address] = {}
        for name in names:
            address = await resolver.resolve_deployed_address(name)
            if not address:
                logger.warning("contract_not_deployed", contract=name)
                continue
            resolved[name] = address
        return cls(addresses=resolved)

    def resolve(self, name: str) -> ContractRef | None:
        address = self.addresses.get(name)
        if address is None:
            return None
        return ContractRef(name=name, address=address)

    def require(self, name: str) -> ContractRef:
        ref = self.resolve(name)
        if ref is None:
            raise ConfigurationError(f"{name} is not deployed in this registry")
        return ref

    def name_for(self, address: str | None) -> str | None:
        for name, known in self.addresses.items():
            if same_address(known, address):
                return name
        return None

    def with_contract(self, name: str, address: Address) -> ContractRegistry:
        return ContractRegistry(addresses={**self.addresses, name: address})


class SettingsAddressResolver:
    """Resolves deployed addresses from `AppSettings` fields."""

    def __init__(self, settings: AppSettings) -> None:
        self._addresses: dict[str, str] = {
            "GenesisProtocol": settings.genesis_protocol_address,
            "ContributionReward": settings.contribution_reward_address,
            "Redeemer": settings.redeemer_address,
        }

    async def resolve_deployed_address(self, name: str) -> Address | None:
        return self._addresses.get(name) or None

    def configured(self) -> dict[str, Address]:
        return {name: address for name, address in self._addresses.items() if address}
