"""Response schemas for on-chain read endpoints. Amounts are decimal strings in TEA."""

from __future__ import annotations

from pydantic import BaseModel


class StakingPositionResponse(BaseModel):
    wallet_address: str
    staked: str | None
    earned: str | None
    total_staked: str | None
    reward_rate_per_year: str | None


class VotingPowerResponse(BaseModel):
    wallet_address: str
    tea_balance: str
    voting_power: str
    delegatee: str | None
    voting_active: bool


class ProposalResponse(BaseModel):
    proposal_id: str
    state: str
    against_votes: str
    for_votes: str
    abstain_votes: str
    has_voted: bool | None = None
