"""Reward endpoints: eligibility, claim and claim history.

The claim route is mounted twice: under the API prefix and at the path the
web client already calls (``/functions/v1/claim-tea-reward``).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.auth.dependencies import get_current_user_optional
from teaedu.auth.jwt import AuthenticatedUser
from teaedu.chain.client import get_token_gateway
from teaedu.chain.token import TokenGateway
from teaedu.config import Settings, get_settings
from teaedu.database import get_session
from teaedu.db.models import RewardClaim
from teaedu.rewards.claim_service import ClaimService
from teaedu.rewards.eligibility import EligibilityEvaluator
from teaedu.rewards.exceptions import NotAuthenticated
from teaedu.rewards.schemas import (
    ClaimFailureResponse,
    ClaimSuccessResponse,
    EligibilityResponse,
    RewardClaimListResponse,
    RewardClaimResponse,
)

router = APIRouter(prefix="/api/v1/rewards", tags=["Rewards"])
function_router = APIRouter(prefix="/functions/v1", tags=["Rewards"])

_claim_responses: dict[int | str, dict] = {
    400: {"model": ClaimFailureResponse},
    401: {"model": ClaimFailureResponse},
    500: {"model": ClaimFailureResponse},
}


def _require_user(user: AuthenticatedUser | None) -> AuthenticatedUser:
    if user is None:
        raise NotAuthenticated
    return user


@router.get("/eligibility", response_model=EligibilityResponse, responses={401: {"model": ClaimFailureResponse}})
async def get_eligibility(
    user: AuthenticatedUser | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
) -> EligibilityResponse:
    """Advisory eligibility for display. The claim route re-runs the same checks."""
    user = _require_user(user)
    status = await EligibilityEvaluator(db).evaluate(user.id)
    return EligibilityResponse.model_validate(status.to_camel())


@router.get("/claims", response_model=RewardClaimListResponse, responses={401: {"model": ClaimFailureResponse}})
async def list_claims(
    user: AuthenticatedUser | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
) -> RewardClaimListResponse:
    user = _require_user(user)
    result = await db.execute(
        select(RewardClaim).where(RewardClaim.user_id == user.id).order_by(RewardClaim.created_at.desc())
    )
    return RewardClaimListResponse(
        claims=[RewardClaimResponse.model_validate(row) for row in result.scalars().all()]
    )


async def claim_reward(
    user: AuthenticatedUser | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
    token: TokenGateway = Depends(get_token_gateway),
    settings: Settings = Depends(get_settings),
) -> ClaimSuccessResponse:
    """Pay the module 3 completion reward to the caller's primary wallet. No request body."""
    user = _require_user(user)
    result = await ClaimService(db, token, settings).claim(user)
    return ClaimSuccessResponse(tx_hash=result.tx_hash, amount=result.amount)


async def claim_preflight() -> Response:
    """Empty 200 for preflights that reach the route (no Origin header)."""
    return Response(status_code=200)


for _router, _path in ((router, "/claim"), (function_router, "/claim-tea-reward")):
    _router.add_api_route(
        _path,
        claim_reward,
        methods=["POST"],
        response_model=ClaimSuccessResponse,
        responses=_claim_responses,
    )
    _router.add_api_route(_path, claim_preflight, methods=["OPTIONS"], include_in_schema=False)
