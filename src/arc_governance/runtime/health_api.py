from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI

from arc_governance.config import AppSettings, get_settings
from arc_governance.ethereum.registry import ContractRegistry, SettingsAddressResolver
from arc_governance.observability.redaction import redact_url


@dataclass(slots=True, frozen=True)
class ClientHealth:
    registry: ContractRegistry
    rpc_url: str
    rpc_status: str = "unknown"


def build_health_app(settings: AppSettings, health: ClientHealth) -> FastAPI:
    app = FastAPI(title=f"{settings.dao_name}-health", version="0.1.0")

    @app.get("/livez")
    async def livez() -> dict[str, str]:
        return {"status": "ok", "app_env": settings.app_env}

    @app.get("/readyz")
    async def readyz() -> dict[str, object]:
        contracts = dict(health.registry.addresses)
        return {
            "status": "ready" if "GenesisProtocol" in contracts else "degraded",
            "rpc_url": redact_url(health.rpc_url),
            "rpc_status": health.rpc_status,
            "contracts": contracts,
        }

    return app


def default_health_app() -> FastAPI:
    settings = get_settings()
    registry = ContractRegistry(addresses=SettingsAddressResolver(settings).configured())
    return build_health_app(
        settings,
        ClientHealth(registry=registry, rpc_url=settings.ethereum_rpc_url),
    )
