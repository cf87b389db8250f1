"""Response schemas for reward endpoints. Wire format is camelCase."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClaimSuccessResponse(CamelModel):
    success: bool = True
    tx_hash: str
    amount: int


class ClaimFailureResponse(CamelModel):
    success: bool = False
    error: str


class EligibilityResponse(CamelModel):
    can_claim: bool
    already_claimed: bool
    quiz_passed: bool
    wallet_connected: bool
    wallet_too_new: bool
    wallet_already_used: bool
    wallet_address: str | None = None
    wallet_age_days: int | None = Field(None, alias="walletAge")
    days_remaining: int | None = None
    reason: str | None = None


class RewardClaimResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    reward_type: str
    wallet_address: str
    amount: Decimal
    tx_hash: str
    created_at: datetime


class RewardClaimListResponse(CamelModel):
    claims: list[RewardClaimResponse]
