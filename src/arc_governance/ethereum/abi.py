"""Minimal ABI fragments for the contracts the bindings talk to."""

from __future__ import annotations

from typing import Any

AbiEntry = dict[str, Any]


def _params(declarations: str) -> list[dict[str, Any]]:
    params: list[dict[str, Any]] = []
    for declaration in filter(None, (part.strip() for part in declarations.split(","))):
        pieces = declaration.split()
        indexed = "indexed" in pieces
        pieces = [piece for piece in pieces if piece != "indexed"]
        entry: dict[str, Any] = {"type": pieces[0], "name": pieces[1] if len(pieces) > 1 else ""}
        if indexed:
            entry["indexed"] = True
        params.append(entry)
    return params


def _fn(name: str, inputs: str = "", outputs: str = "", *, view: bool = False) -> AbiEntry:
    return {
        "type": "function",
        "name": name,
        "inputs": _params(inputs),
        "outputs": _params(outputs),
        "stateMutability": "view" if view else "nonpayable",
    }


def _event(name: str, inputs: str) -> AbiEntry:
    params = _params(inputs)
    for param in params:
        param.setdefault("indexed", False)
    return {"type": "event", "name": name, "inputs": params, "anonymous": False}


_REDEEM_EVENT_ARGS = (
    "bytes32 indexed _proposalId, address indexed _avatar, address indexed _beneficiary, uint256 _amount"
)

GENESIS_PROTOCOL_ABI: list[AbiEntry] = [
    _fn(
        "propose",
        "uint256 _numOfChoices, bytes32, address _avatar, address _executable, address _proposer",
        "bytes32",
    ),
    _fn("vote", "bytes32 _proposalId, uint256 _vote", "bool"),
    _fn(
        "voteWithSpecifiedAmounts",
        "bytes32 _proposalId, uint256 _vote, uint256 _rep, uint256",
        "bool",
    ),
    _fn("stake", "bytes32 _proposalId, uint256 _vote, uint256 _amount", "bool"),
    _fn("execute", "bytes32 _proposalId", "bool"),
    _fn("redeem", "bytes32 _proposalId, address _beneficiary", "bool"),
    _fn("redeemDaoBounty", "bytes32 _proposalId, address _beneficiary", "uint256, uint256"),
    _fn("setParameters", "uint256[14] _params", "bytes32"),
    _fn(
        "parameters",
        "bytes32",
        ", ".join(f"uint256 p{index}" for index in range(14)),
        view=True,
    ),
    _fn("state", "bytes32 _proposalId", "uint256", view=True),
    _fn(
        "proposalStatus",
        "bytes32 _proposalId",
        "uint256, uint256, uint256, uint256, uint256, uint256",
        view=True,
    ),
    _fn("score", "bytes32 _proposalId", "int256", view=True),
    _fn("threshold", "bytes32 _paramsHash, address _avatar", "uint256", view=True),
    _fn("voteInfo", "bytes32 _proposalId, address _voter", "uint256, uint256", view=True),
    _fn("staker", "bytes32 _proposalId, address _staker", "uint256, uint256", view=True),
    _fn("winningVote", "bytes32 _proposalId", "uint256", view=True),
    _fn("getNumberOfChoices", "bytes32 _proposalId", "uint256", view=True),
    _fn("getBoostedProposalsCount", "address _avatar", "uint256", view=True),
    _fn(
        "proposals",
        "bytes32",
        "address avatar, uint256 numOfChoices, address executable, uint256 votersStakes, "
        "uint256 submittedTime, uint256 boostedPhaseTime, uint8 state, uint256 winningVote, "
        "address proposer, uint256 currentBoostedVotePeriodLimit, bytes32 paramsHash, "
        "uint256 daoBountyRemain",
        view=True,
    ),
    _fn("shouldBoost", "bytes32 _proposalId", "bool", view=True),
    _fn("voteStatus", "bytes32 _proposalId, uint256 _choice", "uint256", view=True),
    _fn("proposalAvatar", "bytes32 _proposalId", "address", view=True),
    _fn("scoreThresholdParams", "address _avatar", "uint256, uint256", view=True),
    _fn("getAllowedRangeOfChoices", "", "uint256 min, uint256 max", view=True),
    _fn("isVotable", "bytes32 _proposalId", "bool", view=True),
    _fn("stakingToken", "", "address", view=True),
    _event(
        "NewProposal",
        "bytes32 indexed _proposalId, address indexed _avatar, uint256 _numOfChoices, "
        "address _proposer, bytes32 _paramsHash",
    ),
    _event(
        "ExecuteProposal",
        "bytes32 indexed _proposalId, address indexed _avatar, uint256 _decision, "
        "uint256 _totalReputation",
    ),
    _event("GPExecuteProposal", "bytes32 indexed _proposalId, uint8 _executionState"),
    _event(
        "VoteProposal",
        "bytes32 indexed _proposalId, address indexed _avatar, address indexed _voter, "
        "uint256 _vote, uint256 _reputation",
    ),
    _event(
        "Stake",
        "bytes32 indexed _proposalId, address indexed _avatar, address indexed _staker, "
        "uint256 _vote, uint256 _amount",
    ),
    _event("Redeem", _REDEEM_EVENT_ARGS),
    _event("RedeemDaoBounty", _REDEEM_EVENT_ARGS),
    _event("RedeemReputation", _REDEEM_EVENT_ARGS),
]

_CONTRIBUTION_REDEEM_ARGS = (
    "address indexed _avatar, bytes32 indexed _proposalId, address indexed _beneficiary, "
    "int256 _amount"
)

CONTRIBUTION_REWARD_ABI: list[AbiEntry] = [
    _event("RedeemReputation", _CONTRIBUTION_REDEEM_ARGS),
    _event("RedeemEther", _CONTRIBUTION_REDEEM_ARGS),
    _event("RedeemNativeToken", _CONTRIBUTION_REDEEM_ARGS),
    _event("RedeemExternalToken", _CONTRIBUTION_REDEEM_ARGS),
]

REDEEMER_ABI: list[AbiEntry] = [
    _fn(
        "redeem",
        "bytes32 _proposalId, address _avatar, address _beneficiary",
        "uint256[5] gpRewards, uint256[2] gpDaoBountyReward, bool executed, "
        "bool[4] crResults",
    ),
]

STANDARD_TOKEN_ABI: list[AbiEntry] = [
    _fn("approve", "address _spender, uint256 _value", "bool"),
    _fn("balanceOf", "address _owner", "uint256", view=True),
    _fn("allowance", "address _owner, address _spender", "uint256", view=True),
    _event(
        "Approval",
        "address indexed owner, address indexed spender, uint256 value",
    ),
]

CONTRACT_ABIS: dict[str, list[AbiEntry]] = {
    "GenesisProtocol": GENESIS_PROTOCOL_ABI,
    "ContributionReward": CONTRIBUTION_REWARD_ABI,
    "Redeemer": REDEEMER_ABI,
    "StandardToken": STANDARD_TOKEN_ABI,
}


def abi_for(contract_name: str) -> list[AbiEntry]:
    try:
        return CONTRACT_ABIS[contract_name]
    except KeyError as exc:
        raise KeyError(f"no ABI registered for {contract_name}") from exc
