"""Governor gateway (read-only; votes are cast from the user's wallet)."""

from __future__ import annotations

from dataclasses import dataclass

from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from teaedu.chain.abi import TEA_GOVERNOR_ABI
from teaedu.chain.client import ChainError
from teaedu.wallets.address import to_checksum

# OpenZeppelin Governor ProposalState enum order
PROPOSAL_STATES = (
    "Pending",
    "Active",
    "Canceled",
    "Defeated",
    "Succeeded",
    "Queued",
    "Expired",
    "Executed",
)


@dataclass(frozen=True)
class ProposalVotes:
    against: int
    for_: int
    abstain: int


class GovernorGateway:
    def __init__(self, web3: AsyncWeb3, address: str) -> None:
        self.contract = web3.eth.contract(address=to_checksum(address), abi=TEA_GOVERNOR_ABI)

    async def proposal_state(self, proposal_id: int) -> str:
        try:
            state = int(await self.contract.functions.state(proposal_id).call())
        except Web3Exception as e:
            msg = f"state({proposal_id}) failed: {e}"
            raise ChainError(msg) from e
        if not 0 <= state < len(PROPOSAL_STATES):
            msg = f"Unknown proposal state {state}"
            raise ChainError(msg)
        return PROPOSAL_STATES[state]

    async def proposal_votes(self, proposal_id: int) -> ProposalVotes:
        try:
            against, for_, abstain = await self.contract.functions.proposalVotes(proposal_id).call()
        except Web3Exception as e:
            msg = f"proposalVotes({proposal_id}) failed: {e}"
            raise ChainError(msg) from e
        return ProposalVotes(against=int(against), for_=int(for_), abstain=int(abstain))

    async def has_voted(self, proposal_id: int, address: str) -> bool:
        try:
            return bool(await self.contract.functions.hasVoted(proposal_id, to_checksum(address)).call())
        except Web3Exception as e:
            msg = f"hasVoted({proposal_id}) failed: {e}"
            raise ChainError(msg) from e
