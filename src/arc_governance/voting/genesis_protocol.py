"""Typed async binding over the deployed GenesisProtocol voting machine."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from arc_governance.domain.parameters import (
    GenesisProtocolParams,
    parameters_hash,
    validate_parameters,
)
from arc_governance.domain.proposal import (
    ChoiceRange,
    ExecutedProposal,
    Proposal,
    ProposalStatus,
    ScoreThresholdParams,
    StakerInfo,
    VoterInfo,
)
from arc_governance.domain.status import ExecutionState, ProposalState, is_votable_state
from arc_governance.errors import ArcError, UnsupportedOperationError, ValidationError
from arc_governance.ethereum.addresses import ZERO_ADDRESS, normalize_address, normalize_hash
from arc_governance.ethereum.registry import ContractRegistry
from arc_governance.ethereum.transport import ChainTransport, LogEntry, LogFilter, Receipt
from arc_governance.events.feeds import EventFeed, LogSource
from arc_governance.observability.logging import get_logger
from arc_governance.tokens.standard_token import StandardToken
from arc_governance.tracking.transactions import (
    TransactionDataResult,
    TransactionResult,
    TransactionTracker,
)
from arc_governance.types import Address, Hash, JsonDict
from arc_governance.voting.rules import (
    compute_threshold,
    ensure_choice,
    ensure_positive_amount,
    ensure_proposal_id,
    ensure_redeemable,
    ensure_votable,
)

ZERO_HASH: Hash = "0x" + "00" * 32


class ProposalResult(TransactionResult):
    """Result of `propose`; the id is only known once the transaction is mined."""

    def __init__(
        self,
        tx_hash: Hash,
        receipt_task: asyncio.Task[Receipt],
        lookup: Callable[[Receipt], Awaitable[Hash]],
    ) -> None:
        super().__init__(tx_hash, receipt_task)
        self._lookup = lookup

    async def get_proposal_id(self) -> Hash:
        return await self._lookup(await self.wait_mined())


class GenesisProtocol:
    def __init__(
        self,
        transport: ChainTransport,
        registry: ContractRegistry,
        tracker: TransactionTracker,
        *,
        auto_approve_token_transfers: bool = True,
    ) -> None:
        self._transport = transport
        self._tracker = tracker
        self._auto_approve = auto_approve_token_transfers
        self.contract = registry.require("GenesisProtocol")
        self._logger = get_logger("genesis_protocol")

    @property
    def address(self) -> Address:
        return self.contract.address

    def _log_call(self, function_name: str, **options: Any) -> None:
        self._logger.info("contract_function_call", function=function_name, **options)

    async def _call(self, method: str, *args: Any) -> Any:
        return await self._transport.call(self.contract, method, list(args))

    async def _validate_vote(self, vote: int, proposal_id: Hash, *, allow_abstain: bool) -> None:
        num_of_choices = await self.get_number_of_choices(proposal_id)
        ensure_choice(vote, num_of_choices, allow_abstain=allow_abstain)

    # -- transactions --------------------------------------------------------

    async def propose(
        self,
        *,
        avatar: Address,
        executable: Address,
        num_of_choices: int = 2,
        proposer: Address | None = None,
    ) -> ProposalResult:
        avatar = normalize_address(avatar, field_name="avatar")
        executable = normalize_address(executable, field_name="executable")
        proposer = normalize_address(proposer, field_name="proposer") if proposer else ZERO_ADDRESS
        allowed = await self.get_allowed_range_of_choices()
        if num_of_choices > allowed.maximum:
            raise ValidationError(f"num_of_choices cannot be greater than {allowed.maximum}")
        if num_of_choices < allowed.minimum:
            raise ValidationError(f"num_of_choices cannot be less than {allowed.minimum}")

        options: JsonDict = {
            "avatar": avatar,
            "executable": executable,
            "num_of_choices": num_of_choices,
            "proposer": proposer,
        }
        self._log_call("GenesisProtocol.propose", **options)
        payload = self._tracker.kickoff("GenesisProtocol.propose", options)
        result = await self._tracker.send(
            payload,
            self.contract,
            "propose",
            [num_of_choices, ZERO_HASH, avatar, executable, proposer],
        )
        return ProposalResult(result.tx_hash, result.receipt_task, self._proposal_id_from_receipt)

    async def _proposal_id_from_receipt(self, receipt: Receipt) -> Hash:
        window = LogFilter(from_block=receipt.block_number, to_block=receipt.block_number)
        for entry in await self._transport.get_logs(self.contract, "NewProposal", window):
            if entry.transaction_hash == receipt.transaction_hash:
                return str(entry.args["_proposalId"])
        raise ArcError(f"no NewProposal event found in transaction {receipt.transaction_hash}")

    async def vote(self, proposal_id: Hash, vote: int) -> TransactionResult:
        proposal_id = ensure_proposal_id(proposal_id)
        await self._validate_vote(vote, proposal_id, allow_abstain=True)
        ensure_votable(await self.get_state(proposal_id))
        options: JsonDict = {"proposal_id": proposal_id, "vote": vote}
        self._log_call("GenesisProtocol.vote", **options)
        return await self._tracker.invoke(
            "GenesisProtocol.vote", options, self.contract, "vote", [proposal_id, vote]
        )

    async def vote_with_specified_amounts(
        self, proposal_id: Hash, vote: int, reputation: int
    ) -> TransactionResult:
        proposal_id = ensure_proposal_id(proposal_id)
        await self._validate_vote(vote, proposal_id, allow_abstain=True)
        ensure_positive_amount(reputation, field_name="reputation")
        ensure_votable(await self.get_state(proposal_id))
        options: JsonDict = {"proposal_id": proposal_id, "vote": vote, "reputation": reputation}
        self._log_call("GenesisProtocol.voteWithSpecifiedAmounts", **options)
        return await self._tracker.invoke(
            "GenesisProtocol.voteWithSpecifiedAmounts",
            options,
            self.contract,
            "voteWithSpecifiedAmounts",
            [proposal_id, vote, reputation, 0],
        )

    async def stake(self, proposal_id: Hash, vote: int, amount: int) -> TransactionResult:
        """Stake tokens; approves the transfer first when auto-approval is on."""
        return await self._stake("GenesisProtocol.stake", proposal_id, vote, amount, self._auto_approve)

    async def stake_with_approval(
        self, proposal_id: Hash, vote: int, amount: int
    ) -> TransactionResult:
        return await self._stake("GenesisProtocol.stakeWithApproval", proposal_id, vote, amount, True)

    async def _stake(
        self, function_name: str, proposal_id: Hash, vote: int, amount: int, approve: bool
    ) -> TransactionResult:
        proposal_id = ensure_proposal_id(proposal_id)
        await self._validate_vote(vote, proposal_id, allow_abstain=False)
        ensure_positive_amount(amount)

        options: JsonDict = {"proposal_id": proposal_id, "vote": vote, "amount": amount}
        payload = self._tracker.kickoff(function_name, options, expected_count=2 if approve else 1)
        if approve:
            try:
                token = await self.get_staking_token()
                approval = await token.approve(self.address, amount, payload=payload)
                await approval.wait_mined()
            except Exception as exc:
                # send and receipt failures are already on the bus
                if payload.error_count == 0:
                    self._tracker.fail(payload, exc)
                raise

        self._log_call(function_name, **options)
        return await self._tracker.send(
            payload, self.contract, "stake", [proposal_id, vote, amount]
        )

    async def execute(self, proposal_id: Hash) -> TransactionResult:
        proposal_id = ensure_proposal_id(proposal_id)
        self._log_call("GenesisProtocol.execute", proposal_id=proposal_id)
        return await self._tracker.invoke(
            "GenesisProtocol.execute",
            {"proposal_id": proposal_id},
            self.contract,
            "execute",
            [proposal_id],
        )

    async def redeem(self, proposal_id: Hash, beneficiary: Address) -> TransactionResult:
        return await self._redeem("redeem", proposal_id, beneficiary)

    async def redeem_dao_bounty(self, proposal_id: Hash, beneficiary: Address) -> TransactionResult:
        return await self._redeem("redeemDaoBounty", proposal_id, beneficiary)

    async def _redeem(self, method: str, proposal_id: Hash, beneficiary: Address) -> TransactionResult:
        proposal_id = ensure_proposal_id(proposal_id)
        beneficiary = normalize_address(beneficiary, field_name="beneficiary")
        ensure_redeemable(await self.get_state(proposal_id))
        options: JsonDict = {"proposal_id": proposal_id, "beneficiary": beneficiary}
        self._log_call(f"GenesisProtocol.{method}", **options)
        return await self._tracker.invoke(
            f"GenesisProtocol.{method}", options, self.contract, method, [proposal_id, beneficiary]
        )

    async def cancel_proposal(self, proposal_id: Hash) -> TransactionResult:
        raise UnsupportedOperationError("GenesisProtocol does not support cancel_proposal")

    async def owner_vote(self, proposal_id: Hash, vote: int, voter: Address) -> TransactionResult:
        raise UnsupportedOperationError("GenesisProtocol does not support owner_vote")

    async def cancel_vote(self, proposal_id: Hash) -> TransactionResult:
        raise UnsupportedOperationError("GenesisProtocol does not support cancel_vote")

    async def set_parameters(self, params: GenesisProtocolParams) -> TransactionDataResult[Hash]:
        """Register a parameter set; the result's value is its hash."""
        params_hash = self.get_parameters_hash(params)
        options: JsonDict = {"params_hash": params_hash}
        self._log_call("GenesisProtocol.setParameters", **options)
        payload = self._tracker.kickoff("GenesisProtocol.setParameters", options)
        result = await self._tracker.send(
            payload, self.contract, "setParameters", [list(params.as_tuple())]
        )
        return TransactionDataResult(result.tx_hash, result.receipt_task, params_hash)

    def get_parameters_hash(self, params: GenesisProtocolParams) -> Hash:
        return parameters_hash(validate_parameters(params))

    async def get_parameters(self, params_hash: Hash) -> GenesisProtocolParams:
        params_hash = normalize_hash(params_hash, field_name="params_hash")
        return GenesisProtocolParams.from_sequence(await self._call("parameters", params_hash))

    # -- queries -------------------------------------------------------------

    async def get_state(self, proposal_id: Hash) -> ProposalState:
        proposal_id = ensure_proposal_id(proposal_id)
        self._log_call("GenesisProtocol.state", proposal_id=proposal_id)
        return ProposalState(int(await self._call("state", proposal_id)))

    async def get_proposal_status(self, proposal_id: Hash) -> ProposalStatus:
        proposal_id = ensure_proposal_id(proposal_id)
        return ProposalStatus.from_contract_tuple(await self._call("proposalStatus", proposal_id))

    async def get_score(self, proposal_id: Hash) -> int:
        return int(await self._call("score", ensure_proposal_id(proposal_id)))

    async def get_threshold(self, avatar: Address, params_hash: Hash) -> int:
        avatar = normalize_address(avatar, field_name="avatar")
        params_hash = normalize_hash(params_hash, field_name="params_hash")
        return int(await self._call("threshold", params_hash, avatar))

    async def estimate_threshold(self, avatar: Address) -> int:
        """Threshold computed locally from the avatar's constants and boosted count."""
        params = await self.get_score_threshold_params(avatar)
        boosted = await self.get_boosted_proposals_count(avatar)
        return compute_threshold(params.threshold_const_a, params.threshold_const_b, boosted)

    async def get_voter_info(self, proposal_id: Hash, voter: Address) -> VoterInfo:
        proposal_id = ensure_proposal_id(proposal_id)
        voter = normalize_address(voter, field_name="voter")
        vote, reputation = await self._call("voteInfo", proposal_id, voter)
        return VoterInfo(vote=int(vote), reputation=int(reputation))

    async def get_staker_info(self, proposal_id: Hash, staker: Address) -> StakerInfo:
        proposal_id = ensure_proposal_id(proposal_id)
        staker = normalize_address(staker, field_name="staker")
        vote, stake = await self._call("staker", proposal_id, staker)
        return StakerInfo(vote=int(vote), stake=int(stake))

    async def get_vote_status(self, proposal_id: Hash, vote: int) -> int:
        proposal_id = ensure_proposal_id(proposal_id)
        await self._validate_vote(vote, proposal_id, allow_abstain=True)
        return int(await self._call("voteStatus", proposal_id, vote))

    async def get_winning_vote(self, proposal_id: Hash) -> int:
        return int(await self._call("winningVote", ensure_proposal_id(proposal_id)))

    async def get_number_of_choices(self, proposal_id: Hash) -> int:
        return int(await self._call("getNumberOfChoices", ensure_proposal_id(proposal_id)))

    async def get_boosted_proposals_count(self, avatar: Address) -> int:
        avatar = normalize_address(avatar, field_name="avatar")
        return int(await self._call("getBoostedProposalsCount", avatar))

    async def get_proposal(self, proposal_id: Hash) -> Proposal:
        proposal_id = ensure_proposal_id(proposal_id)
        return Proposal.from_contract_tuple(proposal_id, await self._call("proposals", proposal_id))

    async def get_proposal_avatar(self, proposal_id: Hash) -> Address:
        return str(await self._call("proposalAvatar", ensure_proposal_id(proposal_id)))

    async def should_boost(self, proposal_id: Hash) -> bool:
        return bool(await self._call("shouldBoost", ensure_proposal_id(proposal_id)))

    async def is_votable(self, proposal_id: Hash) -> bool:
        return bool(await self._call("isVotable", ensure_proposal_id(proposal_id)))

    async def get_score_threshold_params(self, avatar: Address) -> ScoreThresholdParams:
        avatar = normalize_address(avatar, field_name="avatar")
        const_a, const_b = await self._call("scoreThresholdParams", avatar)
        return ScoreThresholdParams(threshold_const_a=int(const_a), threshold_const_b=int(const_b))

    async def get_allowed_range_of_choices(self) -> ChoiceRange:
        minimum, maximum = await self._call("getAllowedRangeOfChoices")
        return ChoiceRange(minimum=int(minimum), maximum=int(maximum))

    async def get_staking_token_address(self) -> Address:
        return str(await self._call("stakingToken"))

    async def get_staking_token(self) -> StandardToken:
        return StandardToken(self._transport, self._tracker, await self.get_staking_token_address())

    async def get_proposal_execution_state(self, proposal_id: Hash) -> ExecutionState:
        proposal_id = ensure_proposal_id(proposal_id)
        entries = await self._transport.get_logs(
            self.contract,
            "GPExecuteProposal",
            LogFilter(from_block=0, argument_filters={"_proposalId": proposal_id}),
        )
        if not entries:
            return ExecutionState.NONE
        return ExecutionState(int(entries[0].args["_executionState"]))

    # -- feeds ---------------------------------------------------------------

    def events(self, event_name: str, **argument_filters: Any) -> EventFeed[LogEntry, LogEntry]:
        async def identity(entry: LogEntry) -> LogEntry:
            return entry

        source = LogSource(self._transport, self.contract, event_name, argument_filters)
        return EventFeed(source, identity, name=f"GenesisProtocol.{event_name}")

    def votable_proposals(self, avatar: Address | None = None) -> EventFeed[LogEntry, Proposal]:
        async def to_votable(entry: LogEntry) -> Proposal | None:
            proposal = await self.get_proposal(str(entry.args["_proposalId"]))
            return proposal if is_votable_state(proposal.state) else None

        source = LogSource(self._transport, self.contract, "NewProposal", _avatar_filter(avatar))
        return EventFeed(source, to_votable, name="GenesisProtocol.votable_proposals")

    def executed_proposals(
        self, avatar: Address | None = None
    ) -> EventFeed[LogEntry, ExecutedProposal]:
        async def to_executed(entry: LogEntry) -> ExecutedProposal:
            proposal = await self.get_proposal(str(entry.args["_proposalId"]))
            return ExecutedProposal(
                proposal=proposal,
                decision=int(entry.args["_decision"]),
                total_reputation=int(entry.args["_totalReputation"]),
                execution_state=await self.get_proposal_execution_state(proposal.proposal_id),
            )

        source = LogSource(self._transport, self.contract, "ExecuteProposal", _avatar_filter(avatar))
        return EventFeed(source, to_executed, name="GenesisProtocol.executed_proposals")


def _avatar_filter(avatar: Address | None) -> dict[str, Any]:
    if avatar is None:
        return {}
    return {"_avatar": normalize_address(avatar, field_name="avatar")}
