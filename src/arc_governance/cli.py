from __future__ import annotations

import json
from argparse import ArgumentParser, Namespace
from collections.abc import Callable, Sequence

from arc_governance.commands import run_params_hash, run_proposal_status, run_reward_events
from arc_governance.config import AppSettings, get_settings
from arc_governance.domain.parameters import GenesisProtocolParams
from arc_governance.observability.logging import configure_logging
from arc_governance.types import CommandResult, CommandStatus

CommandHandler = Callable[[Namespace, AppSettings], CommandResult]

COMMAND_HANDLERS: dict[str, CommandHandler] = {
    "params-hash": run_params_hash,
    "proposal-status": run_proposal_status,
    "reward-events": run_reward_events,
}


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="arc-governance", description="Arc governance client CLI")
    parser.add_argument("--json", action="store_true", help="emit machine-readable JSON output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    params_hash = subparsers.add_parser(
        "params-hash", help="validate GenesisProtocol parameters and print their hash"
    )
    for name in GenesisProtocolParams.field_names():
        params_hash.add_argument(f"--{name.replace('_', '-')}", dest=name, type=int, default=None)

    status = subparsers.add_parser("proposal-status")
    status.add_argument("--proposal-id", required=True)

    rewards = subparsers.add_parser("reward-events")
    rewards.add_argument("--from-block", type=int, default=0)
    rewards.add_argument("--to-block", type=int, default=None)
    rewards.add_argument("--all-sources", action="store_true")

    return parser


def _emit_result(result: CommandResult, *, as_json: bool) -> None:
    if as_json:
        print(result.to_json())
        return

    print(f"{result.command}: {result.status.value}")
    if result.details:
        print(json.dumps(result.details, indent=2, sort_keys=True))


def entrypoint(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    settings = get_settings()
    configure_logging(settings.log_level)

    handler = COMMAND_HANDLERS[str(args.command)]
    result = handler(args, settings)
    _emit_result(result, as_json=bool(args.json))
    return 1 if result.status == CommandStatus.FAILED else 0


if __name__ == "__main__":
    raise SystemExit(entrypoint())
