from __future__ import annotations

from argparse import Namespace
from dataclasses import asdict

from arc_governance.config import AppSettings
from arc_governance.domain.parameters import (
    GenesisProtocolParams,
    parameters_hash,
    validate_parameters,
)
from arc_governance.errors import ConfigurationError, ParameterBoundError
from arc_governance.types import CommandResult, CommandStatus


def _params_from_args(args: Namespace) -> GenesisProtocolParams:
    overrides = {
        name: int(getattr(args, name))
        for name in GenesisProtocolParams.field_names()
        if getattr(args, name, None) is not None
    }
    return GenesisProtocolParams(**overrides)


def run_params_hash(args: Namespace, _: AppSettings) -> CommandResult:
    try:
        params = validate_parameters(_params_from_args(args))
    except ParameterBoundError as exc:
        return CommandResult(
            command="params-hash",
            status=CommandStatus.FAILED,
            details={"error": str(exc), "field": exc.field},
        )
    except (ConfigurationError, TypeError, ValueError) as exc:
        return CommandResult(
            command="params-hash",
            status=CommandStatus.FAILED,
            details={"error": str(exc)},
        )

    return CommandResult(
        command="params-hash",
        status=CommandStatus.OK,
        details={
            "params_hash": parameters_hash(params),
            "params": {name: str(value) for name, value in asdict(params).items()},
        },
    )
