"""Read-only contract endpoints: staking position, voting power and proposals."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException

from teaedu.chain.client import ChainError, get_governor_gateway, get_staking_gateway, get_token_gateway
from teaedu.chain.governor import GovernorGateway
from teaedu.chain.schemas import ProposalResponse, StakingPositionResponse, VotingPowerResponse
from teaedu.chain.staking import StakingGateway
from teaedu.chain.token import TokenGateway
from teaedu.chain.units import format_units
from teaedu.wallets.address import normalize_address

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/chain", tags=["Chain"])


def _address_or_400(address: str) -> str:
    try:
        return normalize_address(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _fmt(value: int | None, decimals: int) -> str | None:
    return format_units(value, decimals) if value is not None else None


@router.get("/staking/{address}", response_model=StakingPositionResponse)
async def staking_position(
    address: str,
    staking: StakingGateway = Depends(get_staking_gateway),
    token: TokenGateway = Depends(get_token_gateway),
) -> StakingPositionResponse:
    """Staked balance, earned rewards, pool size and yearly reward rate."""
    wallet = _address_or_400(address)
    position = await staking.get_position(wallet)
    return StakingPositionResponse(
        wallet_address=wallet,
        staked=_fmt(position.staked, token.decimals),
        earned=_fmt(position.earned, token.decimals),
        total_staked=_fmt(position.total_staked, token.decimals),
        reward_rate_per_year=_fmt(position.reward_rate_per_year, token.decimals),
    )


@router.get("/governance/{address}", response_model=VotingPowerResponse)
async def voting_power(
    address: str,
    token: TokenGateway = Depends(get_token_gateway),
) -> VotingPowerResponse:
    """Token balance, delegated voting power and current delegatee."""
    wallet = _address_or_400(address)
    try:
        balance = await token.balance_of(wallet)
        votes = await token.get_votes(wallet)
        delegatee = await token.delegates(wallet)
    except ChainError as e:
        logger.warning("governance_read_failed", wallet_address=wallet, error=str(e))
        raise HTTPException(status_code=502, detail="Blockchain node unavailable") from e
    return VotingPowerResponse(
        wallet_address=wallet,
        tea_balance=format_units(balance, token.decimals),
        voting_power=format_units(votes, token.decimals),
        delegatee=delegatee,
        voting_active=delegatee is not None,
    )


@router.get("/governance/proposals/{proposal_id}", response_model=ProposalResponse)
async def proposal(
    proposal_id: int,
    voter: str | None = None,
    governor: GovernorGateway = Depends(get_governor_gateway),
    token: TokenGateway = Depends(get_token_gateway),
) -> ProposalResponse:
    """Proposal state and tallies; ``voter`` adds whether that address already voted."""
    voter_address = _address_or_400(voter) if voter else None
    try:
        state = await governor.proposal_state(proposal_id)
        votes = await governor.proposal_votes(proposal_id)
        voted = await governor.has_voted(proposal_id, voter_address) if voter_address else None
    except ChainError as e:
        logger.warning("proposal_read_failed", proposal_id=proposal_id, error=str(e))
        raise HTTPException(status_code=502, detail="Blockchain node unavailable") from e
    return ProposalResponse(
        proposal_id=str(proposal_id),
        state=state,
        against_votes=format_units(votes.against, token.decimals),
        for_votes=format_units(votes.for_, token.decimals),
        abstain_votes=format_units(votes.abstain, token.decimals),
        has_voted=voted,
    )
